"""Declarative reconciliation of Secret Server secrets."""

__version__ = "0.4.0"
