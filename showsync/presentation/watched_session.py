"""Session state for the watched-shows screen."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from showsync.presentation.auth import AuthState
from showsync.presentation.images import ImageUrlProvider
from showsync.reactive.flow import StateFlow
from showsync.reactive.loading import ObservableLoadingCounter
from showsync.reactive.operators import debounce, distinct_until_changed
from showsync.read_view.cursor import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_PREFETCH_DISTANCE,
    BoundaryCallback,
    PagedCursor,
)
from showsync.read_view.list_view import READ_TABLES
from showsync.read_view.query import ListItem, ListQuery, SortOption
from showsync.read_view.repository import ShowListRepository
from showsync.sync.constants import SyncKind
from showsync.sync.models import SyncState

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from showsync.config.settings import AppConfig
    from showsync.db.notifier import ChangeNotifier, Subscription
    from showsync.presentation.auth import AuthStateStore
    from showsync.sync.models import SyncResult
    from showsync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

AVAILABLE_SORTS = (SortOption.LAST_WATCHED, SortOption.ALPHABETICAL)


@dataclass(frozen=True)
class WatchedViewState:
    is_loading: bool = False
    is_empty: bool = False
    sync_failed: bool = False
    last_error: str | None = None
    image_url_provider: ImageUrlProvider = field(default_factory=ImageUrlProvider)
    items: tuple[ListItem, ...] = ()
    filter: str | None = None
    filter_active: bool = False
    sort: SortOption = SortOption.LAST_WATCHED
    available_sorts: tuple[SortOption, ...] = AVAILABLE_SORTS
    selection_open: bool = False
    selected_entry_ids: frozenset[int] = frozenset()


class WatchedSession(BoundaryCallback):
    """Own the watched list's view state while the screen is active.

    ``start()`` opens the cursor and begins observing loading, auth and store
    changes; ``stop()`` cancels all of it. The session is its cursor's
    boundary callback and derives ``is_empty`` from it. Filter and sort changes restart the
    cursor from the first window. Every transition to ``LOGGED_IN`` triggers a
    background sync of the watched kind that respects the refresh interval.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        repository: ShowListRepository,
        notifier: ChangeNotifier,
        auth: AuthStateStore,
        *,
        image_url_provider: ImageUrlProvider | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        prefetch_distance: int = DEFAULT_PREFETCH_DISTANCE,
        loading_debounce: float = 2.0,
        kind: SyncKind | str = SyncKind.WATCHED,
    ) -> None:
        self._orchestrator = orchestrator
        self._repository = repository
        self._notifier = notifier
        self._auth = auth
        self._kind = str(getattr(kind, "value", kind))
        self.page_size = page_size
        self.prefetch_distance = prefetch_distance
        self.loading_debounce = loading_debounce

        self._loading = ObservableLoadingCounter()
        self._state: StateFlow[WatchedViewState] = StateFlow(
            WatchedViewState(image_url_provider=image_url_provider or ImageUrlProvider())
        )
        self._cursor: PagedCursor | None = None
        self._cursor_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._subscription: Subscription | None = None
        self._running = False

    @classmethod
    def from_config(
        cls,
        orchestrator: SyncOrchestrator,
        notifier: ChangeNotifier,
        repository: ShowListRepository,
        auth: AuthStateStore,
        config: AppConfig,
    ) -> WatchedSession:
        return cls(
            orchestrator,
            repository,
            notifier,
            auth,
            image_url_provider=ImageUrlProvider.from_config(config.images),
            page_size=config.paging.page_size,
            prefetch_distance=config.paging.prefetch_distance,
            loading_debounce=config.paging.loading_debounce_sec,
        )

    @property
    def state(self) -> StateFlow[WatchedViewState]:
        return self._state

    @property
    def cursor(self) -> PagedCursor | None:
        return self._cursor

    @property
    def loading(self) -> ObservableLoadingCounter:
        return self._loading

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info("watched_session_started", extra={"kind": self._kind})

        self._spawn(self._observe_loading(), "watched-loading")
        self._spawn(self._observe_auth(), "watched-auth")
        self._subscription = self._notifier.subscribe(READ_TABLES)
        self._spawn(self._observe_store(self._subscription), "watched-store")
        await self._restart_cursor()
        self._spawn(self._refresh(from_user=False), "watched-initial-refresh")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._cursor is not None:
            self._cursor.invalidate()
        logger.info("watched_session_stopped", extra={"kind": self._kind})

    async def refresh(self) -> SyncResult:
        """User-initiated refresh; waits until logged in."""
        return await self._refresh(from_user=True)

    async def set_filter(self, text: str | None) -> None:
        value = text or None
        self._set_state(filter=value, filter_active=bool(value))
        await self._restart_cursor()

    async def set_sort(self, sort: SortOption) -> None:
        if sort not in self._state.value.available_sorts:
            raise ValueError(f"Unsupported sort option: {sort}")
        self._set_state(sort=sort)
        await self._restart_cursor()

    async def load_around(self, index: int) -> None:
        cursor = self._cursor
        if cursor is None:
            return
        if await cursor.load_around(index):
            self._publish_items(cursor)

    def on_item_click(self, entry_id: int) -> bool:
        state = self._state.value
        if not state.selection_open:
            return False
        if entry_id in state.selected_entry_ids:
            selection = state.selected_entry_ids - {entry_id}
        else:
            selection = state.selected_entry_ids | {entry_id}
        self._set_state(selection_open=bool(selection), selected_entry_ids=selection)
        return True

    def on_item_long_click(self, entry_id: int) -> bool:
        state = self._state.value
        if state.selection_open:
            return False
        self._set_state(
            selection_open=True,
            selected_entry_ids=state.selected_entry_ids | {entry_id},
        )
        return True

    def on_zero_items_loaded(self) -> None:
        # An empty result under an active filter is not an empty library
        self._set_state(is_empty=not self._state.value.filter_active)

    def on_item_at_front_loaded(self, item: ListItem) -> None:
        self._set_state(is_empty=False)

    def on_item_at_end_loaded(self, item: ListItem) -> None:
        self._set_state(is_empty=False)

    def _set_state(self, **changes: Any) -> None:
        self._state.update(lambda current: replace(current, **changes))

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "watched_session_task_failed",
                extra={"task": task.get_name(), "error": str(exc)},
                exc_info=exc,
            )

    def _current_query(self) -> ListQuery:
        state = self._state.value
        return ListQuery(kind=self._kind, filter=state.filter, sort=state.sort)

    def _publish_items(self, cursor: PagedCursor) -> None:
        if cursor is self._cursor:
            self._set_state(items=tuple(cursor.items))

    async def _restart_cursor(self) -> None:
        async with self._cursor_lock:
            if self._cursor is not None:
                self._cursor.invalidate()
            cursor = PagedCursor(
                self._repository,
                self._current_query(),
                page_size=self.page_size,
                prefetch_distance=self.prefetch_distance,
                boundary_callback=self,
            )
            self._cursor = cursor
            self._set_state(items=())
            logger.debug(
                "watched_cursor_restarted",
                extra={"filter": cursor.query.filter, "sort": cursor.query.sort.value},
            )
        await cursor.load_next()
        self._publish_items(cursor)

    async def _refresh(self, *, from_user: bool) -> SyncResult:
        await self._auth.wait_logged_in()
        return await self._sync(from_user=from_user)

    async def _sync(self, *, from_user: bool) -> SyncResult:
        result = await self._loading.collect_from(
            self._orchestrator.sync(self._kind, from_user=from_user)
        )
        if result.state is SyncState.FAILED:
            self._set_state(sync_failed=True, last_error=result.error)
        elif not result.skipped:
            self._set_state(sync_failed=False, last_error=None)
        return result

    async def _observe_loading(self) -> None:
        changes = distinct_until_changed(self._loading.observable.collect())
        async for is_loading in debounce(changes, self.loading_debounce):
            self._set_state(is_loading=is_loading)

    async def _observe_auth(self) -> None:
        async for auth_state in distinct_until_changed(self._auth.observable.collect()):
            if auth_state is AuthState.LOGGED_IN:
                self._spawn(self._sync(from_user=False), "watched-auth-refresh")

    async def _observe_store(self, subscription: Subscription) -> None:
        async with subscription:
            async for _tables in subscription:
                cursor = self._cursor
                if cursor is None:
                    continue
                await cursor.reload()
                self._publish_items(cursor)
