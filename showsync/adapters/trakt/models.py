"""Pydantic models for the Trakt show-list API."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from enum import Enum

from pydantic import BaseModel, Field


class Extended(str, Enum):
    """Field extent requested from the API."""

    MIN = "min"
    FULL = "full"
    NOSEASONS = "noseasons"


class TraktIds(BaseModel):
    trakt: int
    slug: str | None = None
    tvdb: int | None = None
    imdb: str | None = None
    tmdb: int | None = None

    model_config = {"extra": "ignore"}


class RemoteShow(BaseModel):
    """Show as returned by the API; only ``ids.trakt`` is guaranteed."""

    ids: TraktIds
    title: str | None = None
    year: int | None = None
    overview: str | None = None
    network: str | None = None
    runtime: int | None = None
    status: str | None = None

    model_config = {"extra": "ignore"}

    @property
    def remote_key(self) -> int:
        return self.ids.trakt


class TrendingShow(BaseModel):
    watchers: int = 0
    show: RemoteShow

    model_config = {"extra": "ignore"}


class WatchedShow(BaseModel):
    plays: int = 0
    last_watched_at: datetime | None = None
    show: RemoteShow

    model_config = {"extra": "ignore"}


class RemoteItem(BaseModel):
    """One entry of a fetched page: the show plus list-specific metadata."""

    show: RemoteShow
    watchers: int | None = None
    plays: int | None = None
    last_watched_at: datetime | None = None

    @property
    def remote_key(self) -> int:
        return self.show.ids.trakt

    @classmethod
    def from_trending(cls, entry: TrendingShow) -> RemoteItem:
        return cls(show=entry.show, watchers=entry.watchers)

    @classmethod
    def from_watched(cls, entry: WatchedShow) -> RemoteItem:
        return cls(show=entry.show, plays=entry.plays, last_watched_at=entry.last_watched_at)


class TraktPage(BaseModel):
    """A fetched page together with the server's pagination headers."""

    items: list[RemoteItem] = Field(default_factory=list)
    page: int
    limit: int
    page_count: int | None = None
    item_count: int | None = None
