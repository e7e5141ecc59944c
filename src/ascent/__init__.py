"""Ascent: progress tracker for a structured competitive-programming plan."""

__version__ = "0.1.0"
