"""Threaded discussion engine for article comments and forums."""

__version__ = "0.1.0"
