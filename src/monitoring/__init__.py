"""
Monitoring Module

Prometheus metrics for the Magna Porta API.
"""

from src.monitoring.metrics import Metrics, get_metrics

__all__ = [
    "Metrics",
    "get_metrics",
]
