"""Observable value holder with conflated async collection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateFlow(Generic[T]):
    """Hold a current value and notify collectors when it changes.

    Collectors always receive the current value first, then the latest value
    after each change. Updates that happen while a collector is busy are
    conflated: it sees only the newest value. Assigning a value equal to the
    current one does not notify anybody.

    Example:
        flow = StateFlow(False)

        async for loading in flow:
            render_spinner(loading)
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: list[asyncio.Event] = []

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        if new_value == self._value:
            return
        self._value = new_value
        for event in self._listeners:
            event.set()

    def update(self, func: Callable[[T], T]) -> T:
        """Replace the value with ``func(current)`` and return the new value."""
        self.value = func(self._value)
        return self._value

    @property
    def collector_count(self) -> int:
        return len(self._listeners)

    async def collect(self) -> AsyncIterator[T]:
        event = asyncio.Event()
        event.set()
        self._listeners.append(event)
        try:
            while True:
                await event.wait()
                event.clear()
                yield self._value
        finally:
            self._listeners.remove(event)

    def __aiter__(self) -> AsyncIterator[T]:
        return self.collect()

    async def first(self, predicate: Callable[[T], bool]) -> T:
        """Wait until the value satisfies ``predicate`` and return it."""
        if predicate(self._value):
            return self._value
        collector = self.collect()
        try:
            async for value in collector:
                if predicate(value):
                    return value
        finally:
            await collector.aclose()
        raise RuntimeError("StateFlow collection ended unexpectedly")

    def __repr__(self) -> str:
        return f"StateFlow({self._value!r})"
