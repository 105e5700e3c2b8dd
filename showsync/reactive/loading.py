"""Counter of in-flight operations exposed as an observable boolean."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, TypeVar

from showsync.reactive.flow import StateFlow

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ObservableLoadingCounter:
    """Coalesce overlapping operations into a single "is loading" signal.

    ``observable`` is True while at least one tracked operation is running.
    """

    def __init__(self) -> None:
        self._count = 0
        self._flow: StateFlow[bool] = StateFlow(False)

    @property
    def observable(self) -> StateFlow[bool]:
        return self._flow

    @property
    def count(self) -> int:
        return self._count

    def add_loader(self) -> None:
        self._count += 1
        self._flow.value = True

    def remove_loader(self) -> None:
        if self._count == 0:
            logger.warning("loading_counter_underflow")
            return
        self._count -= 1
        self._flow.value = self._count > 0

    @asynccontextmanager
    async def track(self) -> AsyncIterator[None]:
        self.add_loader()
        try:
            yield
        finally:
            self.remove_loader()

    async def collect_from(self, operation: Awaitable[T]) -> T:
        """Await ``operation`` while counting it as in flight."""
        async with self.track():
            return await operation
