"""Norseman tour booking service."""

__version__ = "1.0.0"
