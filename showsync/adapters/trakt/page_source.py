"""Remote page sources backed by the Trakt client.

The orchestrator counts pages from zero; the API counts from one. This is the
only place where that translation happens.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from showsync.adapters.trakt.models import Extended
from showsync.sync.constants import SyncKind

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from showsync.adapters.trakt.client import TraktClient
    from showsync.adapters.trakt.models import RemoteItem, TraktPage

logger = logging.getLogger(__name__)


def to_remote_page(page_index: int) -> int:
    """Translate a zero-based page index into the API's one-based page number."""
    if page_index < 0:
        raise ValueError(f"Page index must not be negative, got {page_index}")
    return page_index + 1


class TraktPageSource:
    """Fetch one page of a sync kind from the API."""

    def __init__(
        self,
        client: TraktClient,
        kind: SyncKind | str,
        extended: Extended = Extended.NOSEASONS,
    ) -> None:
        self.client = client
        self.kind = SyncKind(kind)
        self.extended = extended

    def _endpoint(self) -> Callable[[int, int, Extended], Awaitable[TraktPage]]:
        if self.kind is SyncKind.POPULAR:
            return self.client.popular
        if self.kind is SyncKind.TRENDING:
            return self.client.trending
        return self.client.watched

    async def fetch(self, page_index: int, page_size: int) -> list[RemoteItem]:
        if page_size <= 0:
            raise ValueError(f"Page size must be positive, got {page_size}")
        remote_page = to_remote_page(page_index)
        page = await self._endpoint()(remote_page, page_size, self.extended)
        logger.debug(
            "trakt_page_fetched",
            extra={
                "kind": self.kind.value,
                "page_index": page_index,
                "remote_page": remote_page,
                "items": len(page.items),
                "page_count": page.page_count,
            },
        )
        return page.items


def build_page_sources(
    client: TraktClient, extended: Extended = Extended.NOSEASONS
) -> dict[str, TraktPageSource]:
    """One page source per remote kind, keyed by kind name."""
    return {kind.value: TraktPageSource(client, kind, extended) for kind in SyncKind}
