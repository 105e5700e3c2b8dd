"""Table-change notifications published after committed writes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Self

logger = logging.getLogger(__name__)


class Subscription:
    """Async iterator over change notifications for a set of tables.

    Notifications that arrive while the consumer is busy are coalesced into a
    single set of table names, so a slow reader re-queries once instead of
    once per commit.
    """

    def __init__(self, notifier: ChangeNotifier, tables: frozenset[str]) -> None:
        self._notifier = notifier
        self.tables = tables
        self._pending: set[str] = set()
        self._ready = asyncio.Event()
        self._closed = False

    def _offer(self, changed: frozenset[str]) -> None:
        interested = changed & self.tables
        if interested and not self._closed:
            self._pending.update(interested)
            self._ready.set()

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> frozenset[str]:
        if self._closed:
            raise StopAsyncIteration
        await self._ready.wait()
        if self._closed:
            raise StopAsyncIteration
        self._ready.clear()
        changed = frozenset(self._pending)
        self._pending.clear()
        return changed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._notifier._unsubscribe(self)
        # Wake a consumer blocked in __anext__ so it can stop
        self._ready.set()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        self.close()


class ChangeNotifier:
    """Fan out "these tables changed" events to subscribers."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, tables: Iterable[str]) -> Subscription:
        """Register interest in ``tables``; delivery starts immediately."""
        subscription = Subscription(self, frozenset(tables))
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def notify(self, tables: Iterable[str]) -> None:
        changed = frozenset(tables)
        if not changed:
            return
        for subscription in list(self._subscriptions):
            subscription._offer(changed)
        logger.debug(
            "store_changed",
            extra={"tables": sorted(changed), "subscribers": len(self._subscriptions)},
        )

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
