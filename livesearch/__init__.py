"""Live product search service."""

__version__ = "1.0.0"
