"""Magna Porta HTTP API."""
