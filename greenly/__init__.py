"""Greenly access-control layer."""

__version__ = "0.1.0"
