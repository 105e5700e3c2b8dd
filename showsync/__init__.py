"""Paginated remote-to-local show synchronization."""

__version__ = "0.1.0"
