"""Trakt API client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import TypeAdapter, ValidationError

from showsync.adapters.trakt.models import (
    Extended,
    RemoteItem,
    RemoteShow,
    TraktPage,
    TrendingShow,
    WatchedShow,
)
from showsync.sync.errors import FatalError, SyncError, TransientError

if TYPE_CHECKING:
    from typing import Self

logger = logging.getLogger(__name__)

API_VERSION = "2"

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

_SHOW_LIST = TypeAdapter(list[RemoteShow])
_TRENDING_LIST = TypeAdapter(list[TrendingShow])
_WATCHED_LIST = TypeAdapter(list[WatchedShow])


def classify_http_error(exc: Exception) -> SyncError:
    """Translate an httpx failure into a transient or fatal sync error."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        message = f"HTTP {status} for {exc.request.url.path}"
        if status in RETRYABLE_STATUS_CODES or status >= 500:
            return TransientError(message, status_code=status)
        return FatalError(message, status_code=status)
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return TransientError(f"{type(exc).__name__}: {exc}")
    return FatalError(f"{type(exc).__name__}: {exc}")


def _header_int(response: httpx.Response, name: str) -> int | None:
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class TraktClient:
    """Async HTTP client for the Trakt show lists.

    Pages are addressed with the API's own 1-based ``page`` parameter. Every
    failure surfaces as ``TransientError`` or ``FatalError``; retrying is left
    to the caller.
    """

    def __init__(
        self,
        api_url: str,
        client_id: str,
        access_token: str | None = None,
        timeout: float = 30.0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Base URL for the API (e.g., https://api.trakt.tv)
            client_id: Application client id sent as ``trakt-api-key``
            access_token: OAuth token, required for user lists such as watched
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_url = api_url.rstrip("/")
        self.client_id = client_id
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        headers = {
            "Content-Type": "application/json",
            "trakt-api-key": self.client_id,
            "trakt-api-version": API_VERSION,
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client."""
        if self._client is None:
            raise FatalError("Client not initialized. Use async context manager.")
        return self._client

    async def _get_page(
        self, path: str, page: int, limit: int, extended: Extended
    ) -> tuple[Any, httpx.Response]:
        if page < 1:
            raise ValueError(f"Remote pages are 1-based, got {page}")
        params = {"page": page, "limit": limit, "extended": extended.value}
        try:
            response = await self.client.get(path, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            error = classify_http_error(exc)
            logger.warning(
                "trakt_request_failed",
                extra={
                    "path": path,
                    "page": page,
                    "retryable": error.retryable,
                    "status_code": getattr(error, "status_code", None),
                    "error": str(exc),
                },
            )
            raise error from exc
        return payload, response

    def _build_page(
        self, items: list[RemoteItem], response: httpx.Response, page: int, limit: int
    ) -> TraktPage:
        return TraktPage(
            items=items,
            page=page,
            limit=limit,
            page_count=_header_int(response, "X-Pagination-Page-Count"),
            item_count=_header_int(response, "X-Pagination-Item-Count"),
        )

    async def popular(
        self, page: int, limit: int, extended: Extended = Extended.NOSEASONS
    ) -> TraktPage:
        payload, response = await self._get_page("/shows/popular", page, limit, extended)
        try:
            shows = _SHOW_LIST.validate_python(payload)
        except ValidationError as exc:
            raise FatalError(f"Malformed popular shows payload: {exc}") from exc
        items = [RemoteItem(show=show) for show in shows]
        return self._build_page(items, response, page, limit)

    async def trending(
        self, page: int, limit: int, extended: Extended = Extended.NOSEASONS
    ) -> TraktPage:
        payload, response = await self._get_page("/shows/trending", page, limit, extended)
        try:
            entries = _TRENDING_LIST.validate_python(payload)
        except ValidationError as exc:
            raise FatalError(f"Malformed trending shows payload: {exc}") from exc
        items = [RemoteItem.from_trending(entry) for entry in entries]
        return self._build_page(items, response, page, limit)

    async def watched(
        self, page: int, limit: int, extended: Extended = Extended.NOSEASONS
    ) -> TraktPage:
        if not self.access_token:
            raise FatalError("Watched shows require an access token", status_code=401)
        payload, response = await self._get_page("/sync/watched/shows", page, limit, extended)
        try:
            entries = _WATCHED_LIST.validate_python(payload)
        except ValidationError as exc:
            raise FatalError(f"Malformed watched shows payload: {exc}") from exc
        items = [RemoteItem.from_watched(entry) for entry in entries]
        return self._build_page(items, response, page, limit)

    async def health_check(self) -> bool:
        """Check if the API is reachable with the configured credentials."""
        try:
            await self.popular(page=1, limit=1, extended=Extended.MIN)
            return True
        except SyncError as e:
            logger.warning("trakt_health_check_failed", extra={"error": str(e)})
            return False
