"""Page-by-page sync of remote show lists into the local store.

For each page the orchestrator fetches (with retry), then resolves every item
and replaces the page's entries inside a single transaction. Page *n+1* is
never fetched before page *n* has committed, so readers always see a prefix
of consistent pages.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import TYPE_CHECKING

import peewee

from showsync.core.logging_utils import generate_correlation_id
from showsync.reactive.loading import ObservableLoadingCounter
from showsync.sync.constants import DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE, PAGE_WRITE_TABLES
from showsync.sync.errors import SyncError
from showsync.sync.history import SyncRunRepository
from showsync.sync.models import (
    PageEntryInput,
    PageWriteOutcome,
    SyncResult,
    SyncState,
)
from showsync.sync.resolver import ShowResolver
from showsync.sync.retry import RetryExecutor
from showsync.sync.writer import PageEntryWriter

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from showsync.adapters.trakt.models import RemoteItem
    from showsync.config.sync import SyncConfig
    from showsync.db.session import DatabaseSessionManager
    from showsync.sync.constants import SyncKind
    from showsync.sync.protocols import RemotePageSource

    StateListener = Callable[[str, SyncState, int | None], None]

logger = logging.getLogger(__name__)


def kind_name(kind: SyncKind | str) -> str:
    return str(getattr(kind, "value", kind))


class SyncOrchestrator:
    """Drive fetch → resolve → write for each sync kind.

    At most one sync per kind runs at a time: a request for a kind that is
    already syncing awaits the running task and receives its result. Kinds
    are independent and may sync in parallel.
    """

    def __init__(
        self,
        session: DatabaseSessionManager,
        sources: Mapping[str, RemotePageSource],
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
        retry: RetryExecutor | None = None,
        loading: ObservableLoadingCounter | None = None,
        min_refresh_interval: timedelta = timedelta(hours=1),
        on_state: StateListener | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._session = session
        self._sources = dict(sources)
        self.page_size = page_size
        self.max_pages = max_pages
        self._retry = retry or RetryExecutor()
        self.loading = loading or ObservableLoadingCounter()
        self.min_refresh_interval = min_refresh_interval
        self._on_state = on_state

        self._resolver = ShowResolver(session)
        self._writer = PageEntryWriter(session)
        self._history = SyncRunRepository(session)
        self._in_flight: dict[str, asyncio.Task[SyncResult]] = {}
        self._states: dict[str, SyncState] = {}

    @classmethod
    def from_config(
        cls,
        session: DatabaseSessionManager,
        sources: Mapping[str, RemotePageSource],
        config: SyncConfig,
        *,
        loading: ObservableLoadingCounter | None = None,
        on_state: StateListener | None = None,
    ) -> SyncOrchestrator:
        return cls(
            session,
            sources,
            page_size=config.page_size,
            max_pages=config.max_pages,
            retry=RetryExecutor(
                max_retries=config.max_retries,
                base_delay=config.retry_base_delay,
                max_delay=config.retry_max_delay,
            ),
            loading=loading,
            min_refresh_interval=timedelta(seconds=config.min_refresh_interval_sec),
            on_state=on_state,
        )

    @property
    def history(self) -> SyncRunRepository:
        return self._history

    def state(self, kind: SyncKind | str) -> SyncState:
        return self._states.get(kind_name(kind), SyncState.IDLE)

    def is_syncing(self, kind: SyncKind | str) -> bool:
        task = self._in_flight.get(kind_name(kind))
        return task is not None and not task.done()

    async def sync(
        self,
        kind: SyncKind | str,
        *,
        start_page: int = 0,
        single_page: bool = False,
        from_user: bool = True,
    ) -> SyncResult:
        """Sync ``kind`` starting at ``start_page``.

        Args:
            kind: Sync kind with a registered page source
            start_page: Zero-based page to start from
            single_page: Run exactly one fetch/resolve/write cycle
            from_user: When False, skip if the kind synced recently

        Returns:
            SyncResult; failures are reported in the result, not raised.
        """
        name = kind_name(kind)
        if name not in self._sources:
            raise ValueError(f"No page source registered for kind {name!r}")
        if start_page < 0:
            raise ValueError(f"start_page must not be negative, got {start_page}")

        running = self._in_flight.get(name)
        if running is not None and not running.done():
            logger.info("sync_already_running", extra={"kind": name})
            return await asyncio.shield(running)

        task = asyncio.create_task(
            self._run(name, start_page, single_page, from_user), name=f"sync-{name}"
        )
        self._in_flight[name] = task
        task.add_done_callback(lambda finished: self._forget(name, finished))
        return await asyncio.shield(task)

    async def refresh(self, kind: SyncKind | str, *, from_user: bool = True) -> SyncResult:
        """Re-fetch only the first page."""
        return await self.sync(kind, start_page=0, single_page=True, from_user=from_user)

    async def load_more(self, kind: SyncKind | str) -> SyncResult:
        """Fetch the page after the last stored one."""
        return await self.sync(kind, start_page=await self.next_page(kind), single_page=True)

    async def clear(self, kind: SyncKind | str) -> int:
        """Drop every stored page of ``kind``; shows are kept."""
        removed = await self._writer.clear_kind(kind_name(kind))
        logger.info("sync_kind_cleared", extra={"kind": kind_name(kind), "removed": removed})
        return removed

    async def next_page(self, kind: SyncKind | str) -> int:
        last = await self._writer.last_page(kind_name(kind))
        return 0 if last is None else last + 1

    async def wait_idle(self) -> None:
        """Wait for every in-flight sync to finish."""
        tasks = [task for task in self._in_flight.values() if not task.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(self, name: str, task: asyncio.Task[SyncResult]) -> None:
        if self._in_flight.get(name) is task:
            del self._in_flight[name]

    def _transition(self, kind: str, state: SyncState, page: int | None = None) -> None:
        self._states[kind] = state
        logger.debug("sync_state", extra={"kind": kind, "state": state.value, "page": page})
        if self._on_state is not None:
            self._on_state(kind, state, page)

    async def _run(
        self, kind: str, start_page: int, single_page: bool, from_user: bool
    ) -> SyncResult:
        correlation_id = generate_correlation_id()
        result = SyncResult(kind=kind, start_page=start_page, correlation_id=correlation_id)
        started = time.monotonic()

        if not from_user and await self._history.is_fresh(kind, self.min_refresh_interval):
            logger.info(
                "sync_skipped_fresh", extra={"kind": kind, "correlation_id": correlation_id}
            )
            result.skipped = True
            result.state = SyncState.DONE
            return result

        async with self.loading.track():
            logger.info(
                "sync_started",
                extra={
                    "kind": kind,
                    "start_page": start_page,
                    "single_page": single_page,
                    "correlation_id": correlation_id,
                },
            )
            try:
                reached_end = await self._sync_pages(kind, start_page, single_page, result)
                # Pages past a max_pages cap were not re-fetched and stay as they are
                if start_page == 0 and reached_end and result.last_page is not None:
                    stale = await self._writer.delete_pages_after(kind, result.last_page)
                    if stale:
                        logger.info(
                            "sync_stale_entries_removed",
                            extra={
                                "kind": kind,
                                "removed": stale,
                                "after_page": result.last_page,
                            },
                        )
                result.state = SyncState.DONE
                await self._history.record_success(kind, result.pages_written)
            except (SyncError, peewee.DatabaseError, TimeoutError) as exc:
                result.state = SyncState.FAILED
                result.error = str(exc) or type(exc).__name__
                result.retryable = isinstance(exc, SyncError) and exc.retryable
                logger.error(
                    "sync_failed",
                    extra={
                        "kind": kind,
                        "correlation_id": correlation_id,
                        "pages_written": result.pages_written,
                        "failed_page": self._failed_page(result),
                        "retryable": result.retryable,
                        "error": result.error,
                    },
                )
                await self._record_failure(kind, result.error)
            finally:
                result.duration_seconds = time.monotonic() - started
                if result.state not in (SyncState.DONE, SyncState.FAILED):
                    result.state = SyncState.FAILED
                self._transition(kind, result.state)

        logger.info(
            "sync_finished",
            extra={
                "kind": kind,
                "state": result.state.value,
                "pages_written": result.pages_written,
                "items_written": result.items_written,
                "placeholders_created": result.placeholders_created,
                "duration_seconds": round(result.duration_seconds, 3),
                "correlation_id": correlation_id,
            },
        )
        return result

    async def _sync_pages(
        self, kind: str, start_page: int, single_page: bool, result: SyncResult
    ) -> bool:
        """Fetch and commit pages; return True when the remote list ran out."""
        source = self._sources[kind]
        page = start_page
        pages_fetched = 0

        while True:
            self._transition(kind, SyncState.FETCHING_PAGE, page)
            current = page

            async def _fetch() -> list[RemoteItem]:
                return await source.fetch(current, self.page_size)

            items = await self._retry.run(
                _fetch,
                operation_name=f"fetch_{kind}_page_{page}",
                correlation_id=result.correlation_id,
            )
            pages_fetched += 1

            outcome = await self._write_page(kind, page, items)
            result.pages_written += 1
            result.items_written += outcome.entries_written
            result.placeholders_created += outcome.placeholders_created
            result.last_page = page
            logger.info(
                "sync_page_written",
                extra={
                    "kind": kind,
                    "page": page,
                    "items": outcome.entries_written,
                    "placeholders_created": outcome.placeholders_created,
                    "correlation_id": result.correlation_id,
                },
            )

            if single_page:
                return False
            if len(items) < self.page_size:
                # Empty or short page: the remote list has no more data
                return True
            if pages_fetched >= self.max_pages:
                logger.warning(
                    "sync_max_pages_reached", extra={"kind": kind, "max_pages": self.max_pages}
                )
                return False
            page += 1

    async def _write_page(
        self, kind: str, page: int, items: list[RemoteItem]
    ) -> PageWriteOutcome:
        loop = asyncio.get_running_loop()
        self._transition(kind, SyncState.RESOLVING, page)

        def _resolve_and_write() -> PageWriteOutcome:
            entries: list[PageEntryInput] = []
            seen: set[int] = set()
            created = 0
            resolved = self._resolver.resolve_many_in_transaction(items)
            for order, (item, (show_id, was_created)) in enumerate(zip(items, resolved, strict=True)):
                created += int(was_created)
                if show_id in seen:
                    continue
                seen.add(show_id)
                entries.append(PageEntryInput(show_id, order, item.last_watched_at))

            loop.call_soon_threadsafe(self._transition, kind, SyncState.WRITING, page)
            written = self._writer.apply_page(kind, page, entries)
            return PageWriteOutcome(entries_written=written, placeholders_created=created)

        return await self._session.transaction(
            _resolve_and_write,
            operation_name=f"write_{kind}_page_{page}",
            tables=PAGE_WRITE_TABLES,
        )

    async def _record_failure(self, kind: str, error: str) -> None:
        try:
            await self._history.record_failure(kind, error)
        except peewee.DatabaseError:
            logger.exception("sync_failure_not_recorded", extra={"kind": kind})

    @staticmethod
    def _failed_page(result: SyncResult) -> int:
        if result.last_page is None:
            return result.start_page
        return result.last_page + 1


__all__ = ["SyncOrchestrator", "kind_name"]
