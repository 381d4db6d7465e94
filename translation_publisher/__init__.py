"""Publish spreadsheet translations as versioned JSON files on Cloud Storage."""

__version__ = "0.1.0"
