"""Render, extract and persist the oldest articles of a JavaScript-driven blog."""

__version__ = "0.1.0"
