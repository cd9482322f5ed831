"""Validation and summaries for spreadsheet-exported sales invoice data."""

__version__ = "0.1.0"
