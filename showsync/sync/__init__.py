"""Paginated remote-to-local synchronization."""
