"""List mode: the full ordered item list, re-emitted on every store change."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from showsync.reactive.operators import distinct_until_changed
from showsync.sync.constants import PAGE_ENTRIES_TABLE, SHOWS_TABLE

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from showsync.db.notifier import ChangeNotifier
    from showsync.read_view.query import ListItem, ListQuery
    from showsync.read_view.repository import ShowListRepository

logger = logging.getLogger(__name__)

READ_TABLES = (SHOWS_TABLE, PAGE_ENTRIES_TABLE)


class ListView:
    """Observe the complete list for a query.

    ``observe()`` yields the current list immediately, then again after every
    committed change to the underlying tables or to the query. Emissions equal
    to the previous one are skipped.
    """

    def __init__(
        self,
        repository: ShowListRepository,
        notifier: ChangeNotifier,
        query: ListQuery,
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._query = query
        self._dirty_flags: list[asyncio.Event] = []

    @property
    def query(self) -> ListQuery:
        return self._query

    def set_query(self, query: ListQuery) -> None:
        if query == self._query:
            return
        self._query = query
        for dirty in self._dirty_flags:
            dirty.set()

    async def snapshot(self) -> list[ListItem]:
        return await self._repository.query(self._query)

    async def _changes(self) -> AsyncIterator[list[ListItem]]:
        subscription = self._notifier.subscribe(READ_TABLES)
        dirty = asyncio.Event()
        dirty.set()
        self._dirty_flags.append(dirty)

        async def _watch_store() -> None:
            async for _tables in subscription:
                dirty.set()

        watcher = asyncio.create_task(_watch_store())
        try:
            while True:
                await dirty.wait()
                dirty.clear()
                items = await self.snapshot()
                logger.debug(
                    "list_view_requeried",
                    extra={"kind": self._query.kind, "items": len(items)},
                )
                yield items
        finally:
            subscription.close()
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
            self._dirty_flags.remove(dirty)

    async def observe(self) -> AsyncIterator[list[ListItem]]:
        async with contextlib.aclosing(self._changes()) as changes:
            async for items in distinct_until_changed(changes):
                yield items
