"""Decompose enriched analytics events and load them into BigQuery."""

__version__ = "0.3.0"
