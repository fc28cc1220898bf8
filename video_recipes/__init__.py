"""Tiered recipe extraction from cooking videos."""

__version__ = "0.3.0"
