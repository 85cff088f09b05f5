"""Trace rendered page content back to its template source and mark it for editing."""

__version__ = "0.1.0"
