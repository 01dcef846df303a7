"""Bulk lead import from CSV / Excel files into a document store."""

__version__ = "0.1.0"
