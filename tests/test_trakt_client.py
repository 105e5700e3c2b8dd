"""Tests for the Trakt client and page sources using httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from showsync.adapters.trakt import TraktClient, TraktPageSource, build_page_sources
from showsync.adapters.trakt.models import Extended
from showsync.adapters.trakt.page_source import to_remote_page
from showsync.sync.constants import SyncKind
from showsync.sync.errors import FatalError, TransientError


def _show(trakt_id: int, title: str = "Show") -> dict:
    return {
        "title": f"{title} {trakt_id}",
        "year": 2019,
        "ids": {"trakt": trakt_id, "slug": f"s-{trakt_id}"},
    }


def _client(
    handler: Callable[[httpx.Request], httpx.Response], token: str | None = None
) -> TraktClient:
    return TraktClient(
        "https://api.trakt.test",
        "client-123",
        access_token=token,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_popular_sends_headers_and_one_based_page() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[_show(1), _show(2)],
            headers={"X-Pagination-Page-Count": "7", "X-Pagination-Item-Count": "140"},
        )

    async with _client(handler, token="tok") as client:
        page = await client.popular(page=1, limit=21, extended=Extended.FULL)

    request = seen[0]
    assert request.url.path == "/shows/popular"
    assert request.url.params["page"] == "1"
    assert request.url.params["limit"] == "21"
    assert request.url.params["extended"] == "full"
    assert request.headers["trakt-api-key"] == "client-123"
    assert request.headers["trakt-api-version"] == "2"
    assert request.headers["Authorization"] == "Bearer tok"
    assert [item.remote_key for item in page.items] == [1, 2]
    assert page.page_count == 7
    assert page.item_count == 140


@pytest.mark.asyncio
async def test_trending_and_watched_are_unwrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/shows/trending":
            return httpx.Response(200, json=[{"watchers": 12, "show": _show(5)}])
        return httpx.Response(
            200,
            json=[{"plays": 3, "last_watched_at": "2024-05-01T10:00:00.000Z", "show": _show(9)}],
        )

    async with _client(handler, token="tok") as client:
        trending = await client.trending(page=1, limit=10)
        watched = await client.watched(page=1, limit=10)

    assert trending.items[0].watchers == 12
    assert trending.items[0].remote_key == 5
    assert watched.items[0].plays == 3
    assert watched.items[0].last_watched_at is not None
    assert watched.items[0].last_watched_at.year == 2024


@pytest.mark.asyncio
async def test_watched_without_token_is_fatal() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        return httpx.Response(200, json=[])

    async with _client(handler) as client:
        with pytest.raises(FatalError) as exc_info:
            await client.watched(page=1, limit=10)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
async def test_retryable_statuses_raise_transient(status: int) -> None:
    async with _client(lambda request: httpx.Response(status)) as client:
        with pytest.raises(TransientError) as exc_info:
            await client.popular(page=1, limit=10)
    assert exc_info.value.status_code == status
    assert exc_info.value.retryable


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
async def test_client_errors_raise_fatal(status: int) -> None:
    async with _client(lambda request: httpx.Response(status)) as client:
        with pytest.raises(FatalError) as exc_info:
            await client.popular(page=1, limit=10)
    assert exc_info.value.status_code == status
    assert not exc_info.value.retryable


@pytest.mark.asyncio
async def test_connect_error_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(TransientError):
            await client.popular(page=1, limit=10)


@pytest.mark.asyncio
async def test_malformed_json_is_fatal() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, content=b"{not json", headers={"Content-Type": "application/json"}
        )

    async with _client(handler) as client:
        with pytest.raises(FatalError):
            await client.popular(page=1, limit=10)


@pytest.mark.asyncio
async def test_payload_missing_ids_is_fatal() -> None:
    async with _client(lambda request: httpx.Response(200, json=[{"title": "No ids"}])) as client:
        with pytest.raises(FatalError):
            await client.popular(page=1, limit=10)


@pytest.mark.asyncio
async def test_health_check_reports_failure() -> None:
    async with _client(lambda request: httpx.Response(503)) as client:
        assert await client.health_check() is False
    async with _client(lambda request: httpx.Response(200, json=[_show(1)])) as client:
        assert await client.health_check() is True


def test_client_requires_context_manager() -> None:
    client = TraktClient("https://api.trakt.test", "id")
    with pytest.raises(FatalError):
        _ = client.client


def test_to_remote_page_translation() -> None:
    assert to_remote_page(0) == 1
    assert to_remote_page(4) == 5
    with pytest.raises(ValueError):
        to_remote_page(-1)


@pytest.mark.asyncio
async def test_page_source_translates_index_and_routes_kind() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if "trending" in request.url.path:
            payload = [{"watchers": 1, "show": _show(3)}]
        else:
            payload = [_show(3)]
        return httpx.Response(200, content=json.dumps(payload).encode())

    async with _client(handler) as client:
        sources = build_page_sources(client, Extended.MIN)
        assert set(sources) == {"popular", "trending", "watched"}
        items = await sources["trending"].fetch(2, 21)
        popular = TraktPageSource(client, SyncKind.POPULAR)
        await popular.fetch(0, 21)

    assert [item.remote_key for item in items] == [3]
    assert requests[0].url.path == "/shows/trending"
    assert requests[0].url.params["page"] == "3"
    assert requests[0].url.params["extended"] == "min"
    assert requests[1].url.params["page"] == "1"
    assert requests[1].url.params["extended"] == "noseasons"


@pytest.mark.asyncio
async def test_page_source_rejects_bad_arguments() -> None:
    async with _client(lambda request: httpx.Response(200, json=[])) as client:
        source = TraktPageSource(client, "popular")
        with pytest.raises(ValueError):
            await source.fetch(-1, 21)
        with pytest.raises(ValueError):
            await source.fetch(0, 0)
