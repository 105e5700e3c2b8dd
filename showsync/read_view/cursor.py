"""Cursor mode: incremental loading with boundary callbacks."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from showsync.read_view.query import ListItem, ListQuery
    from showsync.read_view.repository import ShowListRepository

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 60
DEFAULT_PREFETCH_DISTANCE = 20


class BoundaryCallback:
    """Hooks fired as the cursor's loaded window reaches the data's edges.

    Subclass and override what you need; the defaults do nothing.
    """

    def on_zero_items_loaded(self) -> None:
        """The first load found no items for the query."""

    def on_item_at_front_loaded(self, item: ListItem) -> None:
        """The first item of the query has been loaded."""

    def on_item_at_end_loaded(self, item: ListItem) -> None:
        """The last item currently in the store has been loaded.

        Consumers use this to ask the orchestrator for the next remote page.
        """


class PagedCursor:
    """Load a query's items window by window.

    Each ``load_next()`` appends up to ``page_size`` items. ``invalidate()``
    makes the cursor inert: loads already in flight are discarded and later
    calls return nothing. Loads are serialized.
    """

    def __init__(
        self,
        repository: ShowListRepository,
        query: ListQuery,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        prefetch_distance: int = DEFAULT_PREFETCH_DISTANCE,
        boundary_callback: BoundaryCallback | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if prefetch_distance < 0:
            raise ValueError("prefetch_distance must not be negative")
        self._repository = repository
        self.query = query
        self.page_size = page_size
        self.prefetch_distance = prefetch_distance
        self._callback = boundary_callback or BoundaryCallback()
        self._items: list[ListItem] = []
        self._end_reached = False
        self._generation = 0
        self._invalidated = False
        self._lock = asyncio.Lock()

    @property
    def items(self) -> list[ListItem]:
        return list(self._items)

    @property
    def end_reached(self) -> bool:
        return self._end_reached

    @property
    def invalidated(self) -> bool:
        return self._invalidated

    def invalidate(self) -> None:
        self._generation += 1
        self._invalidated = True
        logger.debug("cursor_invalidated", extra={"kind": self.query.kind})

    async def load_next(self) -> list[ListItem]:
        """Load the next window and return the newly added items."""
        generation = self._generation
        async with self._lock:
            if self._invalidated or generation != self._generation or self._end_reached:
                return []
            offset = len(self._items)
            # One extra row tells us whether the store holds more
            rows = await self._repository.query(self.query, offset, self.page_size + 1)
            if self._invalidated or generation != self._generation:
                logger.debug("cursor_load_discarded", extra={"kind": self.query.kind})
                return []
            return self._apply(rows, offset)

    async def reload(self) -> list[ListItem]:
        """Re-read the loaded range after the store changed.

        Boundary callbacks fire again for the refreshed window.
        """
        async with self._lock:
            if self._invalidated:
                return []
            self._generation += 1
            generation = self._generation
            size = max(len(self._items), self.page_size)
            rows = await self._repository.query(self.query, 0, size + 1)
            if self._invalidated or generation != self._generation:
                return []
            self._items = []
            self._end_reached = False
            self._apply(rows, 0, window=size)
            return self.items

    async def load_around(self, index: int) -> list[ListItem]:
        """Prefetch when the consumer is within ``prefetch_distance`` of the loaded end."""
        if self._end_reached or self._invalidated:
            return []
        if index >= len(self._items) - self.prefetch_distance:
            return await self.load_next()
        return []

    def _apply(
        self, rows: list[ListItem], offset: int, window: int | None = None
    ) -> list[ListItem]:
        window = window or self.page_size
        has_more = len(rows) > window
        loaded = rows[:window]
        self._items.extend(loaded)
        self._end_reached = not has_more

        if offset == 0:
            if not loaded:
                self._callback.on_zero_items_loaded()
            else:
                self._callback.on_item_at_front_loaded(loaded[0])
        if loaded and not has_more:
            self._callback.on_item_at_end_loaded(loaded[-1])

        logger.debug(
            "cursor_window_loaded",
            extra={
                "kind": self.query.kind,
                "offset": offset,
                "loaded": len(loaded),
                "end_reached": self._end_reached,
            },
        )
        return loaded
