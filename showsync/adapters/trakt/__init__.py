"""Trakt show-list API integration."""

from showsync.adapters.trakt.client import TraktClient
from showsync.adapters.trakt.page_source import TraktPageSource, build_page_sources

__all__ = ["TraktClient", "TraktPageSource", "build_page_sources"]
