"""Linkup social networking backend core."""

__version__ = "1.0.0"
