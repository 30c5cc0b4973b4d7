"""
Transfer Markup Module

Per-plan transfer fee schedules and the connected-account rate lookup.
"""

from src.markup.service import TransferMarkupRatesService

__all__ = ["TransferMarkupRatesService"]
