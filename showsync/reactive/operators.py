"""Combinators over async iterables."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any, TypeVar

T = TypeVar("T")

_MISSING: Any = object()


async def distinct_until_changed(
    source: AsyncIterable[T],
    *,
    key: Callable[[T], Any] | None = None,
) -> AsyncIterator[T]:
    """Drop values equal to the previously emitted one.

    Args:
        source: Upstream values
        key: Optional projection used for the equality check
    """
    last: Any = _MISSING
    async for value in source:
        marker = key(value) if key is not None else value
        if last is not _MISSING and marker == last:
            continue
        last = marker
        yield value


async def debounce(source: AsyncIterable[T], timeout: float) -> AsyncIterator[T]:
    """Emit a value only after ``timeout`` seconds pass without a newer one.

    The pending value, if any, is flushed when the source completes. Errors
    raised by the source are re-raised after the pending value is dropped.
    A non-positive timeout passes values through unchanged.
    """
    if timeout <= 0:
        async for value in source:
            yield value
        return

    queue: asyncio.Queue[tuple[bool, Any, BaseException | None]] = asyncio.Queue()

    async def _pump() -> None:
        try:
            async for value in source:
                await queue.put((False, value, None))
        except Exception as exc:
            await queue.put((True, None, exc))
        else:
            await queue.put((True, None, None))

    pump = asyncio.create_task(_pump())
    getter: asyncio.Task[tuple[bool, Any, BaseException | None]] | None = None
    pending: Any = _MISSING
    try:
        while True:
            if getter is None:
                getter = asyncio.create_task(queue.get())
            wait_for = None if pending is _MISSING else timeout
            done, _ = await asyncio.wait({getter}, timeout=wait_for)
            if not done:
                value, pending = pending, _MISSING
                yield value
                continue

            finished, value, error = getter.result()
            getter = None
            if finished:
                if error is not None:
                    raise error
                if pending is not _MISSING:
                    yield pending
                return
            pending = value
    finally:
        for task in (getter, pump):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
