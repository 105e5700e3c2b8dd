"""Tests for PageEntryWriter page replacement semantics."""

from __future__ import annotations

import pytest

from showsync.db.models import PageEntry
from showsync.sync.models import PageEntryInput
from showsync.sync.resolver import ShowResolver
from showsync.sync.writer import PageEntryWriter
from tests.conftest import make_item


async def _show_ids(session, *trakt_ids: int) -> list[int]:
    resolver = ShowResolver(session)
    return [await resolver.resolve(make_item(trakt_id)) for trakt_id in trakt_ids]


async def _rows(session, kind: str) -> list[tuple[int, int, int]]:
    def _query() -> list[tuple[int, int, int]]:
        return [
            (entry.page, entry.page_order, entry.show_id)
            for entry in PageEntry.select()
            .where(PageEntry.kind == kind)
            .order_by(PageEntry.page, PageEntry.page_order)
        ]

    return await session.execute(_query, read_only=True)


@pytest.mark.asyncio
async def test_write_page_replaces_previous_rows(session) -> None:
    writer = PageEntryWriter(session)
    a, b, c = await _show_ids(session, 1, 2, 3)

    await writer.write_page("popular", 0, [PageEntryInput(a, 0), PageEntryInput(b, 1)])
    await writer.write_page("popular", 0, [PageEntryInput(c, 0)])

    assert await _rows(session, "popular") == [(0, 0, c)]


@pytest.mark.asyncio
async def test_pages_of_other_kinds_are_untouched(session) -> None:
    writer = PageEntryWriter(session)
    a, b = await _show_ids(session, 1, 2)

    await writer.write_page("popular", 0, [PageEntryInput(a, 0)])
    await writer.write_page("trending", 0, [PageEntryInput(a, 0), PageEntryInput(b, 1)])
    await writer.write_page("trending", 0, [PageEntryInput(b, 0)])

    assert await _rows(session, "popular") == [(0, 0, a)]
    assert await _rows(session, "trending") == [(0, 0, b)]


@pytest.mark.asyncio
async def test_show_moving_pages_keeps_newest_position(session) -> None:
    writer = PageEntryWriter(session)
    a, b, c = await _show_ids(session, 1, 2, 3)

    await writer.write_page("popular", 0, [PageEntryInput(a, 0), PageEntryInput(b, 1)])
    await writer.write_page("popular", 1, [PageEntryInput(c, 0), PageEntryInput(b, 1)])

    assert await _rows(session, "popular") == [(0, 0, a), (1, 0, c), (1, 1, b)]


@pytest.mark.asyncio
async def test_empty_page_clears_rows(session) -> None:
    writer = PageEntryWriter(session)
    (a,) = await _show_ids(session, 1)

    await writer.write_page("popular", 2, [PageEntryInput(a, 0)])
    assert await writer.write_page("popular", 2, []) == 0
    assert await _rows(session, "popular") == []


@pytest.mark.asyncio
async def test_invalid_entries_leave_store_unchanged(session) -> None:
    writer = PageEntryWriter(session)
    a, b = await _show_ids(session, 1, 2)
    await writer.write_page("popular", 0, [PageEntryInput(a, 0)])

    with pytest.raises(ValueError):
        await writer.write_page("popular", 0, [PageEntryInput(b, 0), PageEntryInput(b, 1)])
    with pytest.raises(ValueError):
        await writer.write_page("popular", 0, [PageEntryInput(a, 0), PageEntryInput(b, 0)])
    with pytest.raises(ValueError):
        await writer.write_page("popular", -1, [])

    assert await _rows(session, "popular") == [(0, 0, a)]


@pytest.mark.asyncio
async def test_delete_pages_after_and_last_page(session) -> None:
    writer = PageEntryWriter(session)
    a, b, c = await _show_ids(session, 1, 2, 3)
    assert await writer.last_page("popular") is None

    await writer.write_page("popular", 0, [PageEntryInput(a, 0)])
    await writer.write_page("popular", 1, [PageEntryInput(b, 0)])
    await writer.write_page("popular", 2, [PageEntryInput(c, 0)])
    assert await writer.last_page("popular") == 2

    assert await writer.delete_pages_after("popular", 0) == 2
    assert await writer.last_page("popular") == 0
    assert await writer.clear_kind("popular") == 1
    assert await writer.last_page("popular") is None


@pytest.mark.asyncio
async def test_last_watched_is_persisted(session) -> None:
    from datetime import UTC, datetime

    writer = PageEntryWriter(session)
    (a,) = await _show_ids(session, 1)
    watched_at = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

    await writer.write_page("watched", 0, [PageEntryInput(a, 0, watched_at)])

    entry = await session.execute(
        lambda: PageEntry.get(PageEntry.kind == "watched"), read_only=True
    )
    assert entry.last_watched_at is not None
    assert entry.last_watched_at.replace(tzinfo=UTC) == watched_at
