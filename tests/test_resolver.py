"""Tests for ShowResolver placeholder creation and identity stability."""

from __future__ import annotations

import asyncio

import pytest

from showsync.db.models import Show
from showsync.sync.resolver import ShowResolver
from tests.conftest import make_item


@pytest.mark.asyncio
async def test_resolve_creates_placeholder_once(session) -> None:
    resolver = ShowResolver(session)

    first = await resolver.resolve(make_item(42, "Severance"))
    second = await resolver.resolve(make_item(42, "Severance (renamed)"))

    assert first == second

    def _load() -> list[Show]:
        return list(Show.select())

    shows = await session.execute(_load, read_only=True)
    assert len(shows) == 1
    assert shows[0].trakt_id == 42
    assert shows[0].title == "Severance"
    assert shows[0].is_placeholder is True
    assert shows[0].slug == "show-42"


@pytest.mark.asyncio
async def test_distinct_keys_get_distinct_ids(session) -> None:
    resolver = ShowResolver(session)
    ids = [await resolver.resolve(make_item(trakt_id)) for trakt_id in (1, 2, 3)]
    assert len(set(ids)) == 3


@pytest.mark.asyncio
async def test_concurrent_resolution_of_same_key(session) -> None:
    resolver = ShowResolver(session)
    results = await asyncio.gather(*(resolver.resolve(make_item(7)) for _ in range(5)))
    assert len(set(results)) == 1
    count = await session.execute(lambda: Show.select().count(), read_only=True)
    assert count == 1


@pytest.mark.asyncio
async def test_resolve_many_reports_creation(session) -> None:
    resolver = ShowResolver(session)
    items = [make_item(1), make_item(2), make_item(1)]

    outcome = await session.transaction(resolver.resolve_many_in_transaction, items)

    assert [created for _, created in outcome] == [True, True, False]
    assert outcome[0][0] == outcome[2][0]


@pytest.mark.asyncio
async def test_resolve_recovers_from_unique_conflict(session, monkeypatch) -> None:
    """A lost insert race re-reads the winner instead of failing."""
    resolver = ShowResolver(session)
    winner = await resolver.resolve(make_item(99))

    import showsync.sync.resolver as resolver_module

    lookups = iter([None])
    original = resolver_module._find_show_id

    def _stale_then_real(trakt_id: int):
        try:
            return next(lookups)
        except StopIteration:
            return original(trakt_id)

    monkeypatch.setattr(resolver_module, "_find_show_id", _stale_then_real)

    assert await resolver.resolve(make_item(99)) == winner


def test_resolver_without_session_cannot_resolve_standalone() -> None:
    resolver = ShowResolver()
    with pytest.raises(RuntimeError):
        asyncio.run(resolver.resolve(make_item(1)))
