"""Hybrid semantic and full-text search over captured personal content."""

__version__ = "0.1.0"
