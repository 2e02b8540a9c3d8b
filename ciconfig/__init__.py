"""Resolve, convert and serve CI pipeline configurations."""

__version__ = "1.0.0"
