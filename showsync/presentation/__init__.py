"""Screen-level session state built on the sync engine and read views."""

from showsync.presentation.auth import AuthState, AuthStateStore
from showsync.presentation.images import ImageUrlProvider
from showsync.presentation.watched_session import WatchedSession, WatchedViewState

__all__ = [
    "AuthState",
    "AuthStateStore",
    "ImageUrlProvider",
    "WatchedSession",
    "WatchedViewState",
]
