"""Persist page membership for a sync kind."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from peewee import chunked, fn

from showsync.core.time_utils import utc_now
from showsync.db.models import PageEntry
from showsync.sync.constants import PAGE_ENTRIES_TABLE

if TYPE_CHECKING:
    from showsync.db.session import DatabaseSessionManager
    from showsync.sync.models import PageEntryInput

logger = logging.getLogger(__name__)

_INSERT_BATCH = 100


def _validate_entries(entries: Sequence[PageEntryInput]) -> None:
    show_ids = [entry.show_id for entry in entries]
    if len(set(show_ids)) != len(show_ids):
        raise ValueError("A show may appear only once per page")
    orders = [entry.page_order for entry in entries]
    if len(set(orders)) != len(orders):
        raise ValueError("Page orders must be unique within a page")
    if any(order < 0 for order in orders):
        raise ValueError("Page orders must not be negative")


class PageEntryWriter:
    """Replace the rows of one ``(kind, page)`` with a freshly fetched set.

    ``apply_page`` must run inside an open transaction; ``write_page`` opens
    one, so readers never observe a half-written page.
    """

    def __init__(self, session: DatabaseSessionManager | None = None) -> None:
        self._session = session

    def apply_page(self, kind: str, page: int, entries: Sequence[PageEntryInput]) -> int:
        if page < 0:
            raise ValueError(f"Page index must not be negative, got {page}")
        _validate_entries(entries)

        removed = PageEntry.delete().where(PageEntry.kind == kind, PageEntry.page == page).execute()

        show_ids = [entry.show_id for entry in entries]
        moved = 0
        if show_ids:
            # A show is listed once per kind; one that moved pages keeps its newest position
            moved = (
                PageEntry.delete()
                .where(PageEntry.kind == kind, PageEntry.show.in_(show_ids))
                .execute()
            )

        synced_at = utc_now()
        rows = [
            {
                "kind": kind,
                "page": page,
                "page_order": entry.page_order,
                "show": entry.show_id,
                "synced_at": synced_at,
                "last_watched_at": entry.last_watched_at,
            }
            for entry in entries
        ]
        for batch in chunked(rows, _INSERT_BATCH):
            PageEntry.insert_many(batch).execute()

        logger.debug(
            "page_entries_replaced",
            extra={
                "kind": kind,
                "page": page,
                "removed": removed,
                "moved_from_other_pages": moved,
                "inserted": len(rows),
            },
        )
        return len(rows)

    def delete_pages_after_in_transaction(self, kind: str, page: int) -> int:
        return (
            PageEntry.delete().where(PageEntry.kind == kind, PageEntry.page > page).execute()
        )

    async def write_page(self, kind: str, page: int, entries: Sequence[PageEntryInput]) -> int:
        return await self._require_session().transaction(
            self.apply_page,
            kind,
            page,
            list(entries),
            operation_name="write_page",
            tables=(PAGE_ENTRIES_TABLE,),
        )

    async def delete_pages_after(self, kind: str, page: int) -> int:
        """Drop pages beyond ``page``, left over from a previously longer list."""
        return await self._require_session().transaction(
            self.delete_pages_after_in_transaction,
            kind,
            page,
            operation_name="delete_stale_pages",
            tables=(PAGE_ENTRIES_TABLE,),
        )

    async def clear_kind(self, kind: str) -> int:
        def _clear() -> int:
            return PageEntry.delete().where(PageEntry.kind == kind).execute()

        return await self._require_session().transaction(
            _clear, operation_name="clear_kind", tables=(PAGE_ENTRIES_TABLE,)
        )

    async def last_page(self, kind: str) -> int | None:
        """Highest stored page index for ``kind``, or None when nothing is stored."""

        def _query() -> int | None:
            return (
                PageEntry.select(fn.MAX(PageEntry.page)).where(PageEntry.kind == kind).scalar()
            )

        return await self._require_session().execute(
            _query, operation_name="last_page", read_only=True
        )

    def _require_session(self) -> DatabaseSessionManager:
        if self._session is None:
            raise RuntimeError("PageEntryWriter needs a session for standalone writes")
        return self._session
