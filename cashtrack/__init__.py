"""Aggregation and reporting engine for a personal finance dashboard."""

__version__ = "0.1.0"
