"""Personal task manager JSON API."""

__version__ = "1.0.0"
