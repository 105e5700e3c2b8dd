"""Shared fixtures and builders for the showsync test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import Any

import pytest

from showsync.adapters.trakt.models import RemoteItem, RemoteShow, TraktIds
from showsync.db.session import DatabaseSessionManager


def make_item(
    trakt_id: int,
    title: str | None = None,
    *,
    year: int | None = 2020,
    last_watched_at: datetime | None = None,
) -> RemoteItem:
    """Build a remote item with a predictable slug and title."""
    show = RemoteShow(
        ids=TraktIds(trakt=trakt_id, slug=f"show-{trakt_id}", tmdb=trakt_id + 1000),
        title=title if title is not None else f"Show {trakt_id}",
        year=year,
    )
    return RemoteItem(show=show, last_watched_at=last_watched_at)


def make_page(start: int, count: int) -> list[RemoteItem]:
    return [make_item(trakt_id) for trakt_id in range(start, start + count)]


class FakePageSource:
    """In-memory remote page source.

    ``pages`` holds the responses by zero-based index; missing indexes return an
    empty page. ``failures`` maps a page index to errors raised, in order, on
    the first fetches of that page.
    """

    def __init__(
        self,
        pages: Sequence[Sequence[RemoteItem]] = (),
        failures: dict[int, list[BaseException]] | None = None,
    ) -> None:
        self.pages = [list(page) for page in pages]
        self.failures = {index: list(errors) for index, errors in (failures or {}).items()}
        self.calls: list[tuple[int, int]] = []
        self.gate: asyncio.Event | None = None

    async def fetch(self, page_index: int, page_size: int) -> list[RemoteItem]:
        self.calls.append((page_index, page_size))
        if self.gate is not None:
            await self.gate.wait()
        pending = self.failures.get(page_index)
        if pending:
            raise pending.pop(0)
        if page_index < len(self.pages):
            return list(self.pages[page_index])
        return []


async def no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def db_path(tmp_path: Any) -> str:
    return str(tmp_path / "showsync.db")


@pytest.fixture
def session(db_path: str) -> Iterator[DatabaseSessionManager]:
    """A migrated file-backed session, closed after the test."""
    manager = DatabaseSessionManager(path=db_path, operation_timeout=10.0)
    manager.migrate()
    yield manager
    manager.close()


@pytest.fixture
def memory_session() -> Iterator[DatabaseSessionManager]:
    manager = DatabaseSessionManager(path=":memory:", operation_timeout=10.0)
    manager.migrate()
    yield manager
    manager.close()
