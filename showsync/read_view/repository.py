"""SQLite queries behind the list and cursor read modes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from peewee import fn

from showsync.core.time_utils import ensure_utc
from showsync.db.models import PageEntry, Show
from showsync.read_view.query import ListItem, ListQuery, SortOption

if TYPE_CHECKING:
    from showsync.db.session import DatabaseSessionManager


def _build_select(query: ListQuery) -> Any:
    select = PageEntry.select(PageEntry, Show).join(Show).where(PageEntry.kind == query.kind)
    term = query.normalized_filter
    if term:
        # LIKE is case-insensitive for ASCII in SQLite
        select = select.where(Show.title.contains(term))

    if query.sort is SortOption.ALPHABETICAL:
        return select.order_by(Show.title.is_null(), fn.LOWER(Show.title), Show.id)
    if query.sort is SortOption.LAST_WATCHED:
        return select.order_by(
            PageEntry.last_watched_at.is_null(),
            PageEntry.last_watched_at.desc(),
            PageEntry.synced_at.desc(),
            PageEntry.page,
            PageEntry.page_order,
        )
    return select.order_by(PageEntry.page, PageEntry.page_order)


def _to_item(entry: PageEntry) -> ListItem:
    show: Show = entry.show
    return ListItem(
        entry_id=entry.id,
        show_id=show.id,
        kind=entry.kind,
        page=entry.page,
        page_order=entry.page_order,
        title=show.title,
        year=show.year,
        is_placeholder=bool(show.is_placeholder),
        tmdb_id=show.tmdb_id,
        synced_at=ensure_utc(entry.synced_at),
        last_watched_at=ensure_utc(entry.last_watched_at),
    )


class ShowListRepository:
    """Read the PageEntry/Show join for a ``ListQuery``."""

    def __init__(self, session: DatabaseSessionManager) -> None:
        self._session = session

    def query_sync(
        self, query: ListQuery, offset: int = 0, limit: int | None = None
    ) -> list[ListItem]:
        select = _build_select(query)
        if offset:
            select = select.offset(offset)
        if limit is not None:
            select = select.limit(limit)
        return [_to_item(entry) for entry in select]

    async def query(
        self, query: ListQuery, offset: int = 0, limit: int | None = None
    ) -> list[ListItem]:
        if offset < 0:
            raise ValueError("offset must not be negative")
        if limit is not None and limit < 0:
            raise ValueError("limit must not be negative")
        return await self._session.execute(
            self.query_sync, query, offset, limit, operation_name="list_items", read_only=True
        )

    async def count(self, query: ListQuery) -> int:
        def _count() -> int:
            return _build_select(query).order_by().count()

        return await self._session.execute(_count, operation_name="count_items", read_only=True)
