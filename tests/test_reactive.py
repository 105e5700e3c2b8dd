"""Tests for StateFlow, stream operators, loading counter and change notifier."""

from __future__ import annotations

import asyncio
import contextlib
import unittest
from collections.abc import AsyncIterator

from showsync.db.notifier import ChangeNotifier
from showsync.reactive import ObservableLoadingCounter, StateFlow, debounce, distinct_until_changed


async def _emit(values, delay: float = 0.0) -> AsyncIterator:
    for value in values:
        if delay:
            await asyncio.sleep(delay)
        yield value


async def _collect(source: AsyncIterator) -> list:
    return [value async for value in source]


class TestStateFlow(unittest.IsolatedAsyncioTestCase):
    async def test_collector_receives_current_then_changes(self) -> None:
        flow = StateFlow(0)
        seen: list[int] = []

        async def _consume() -> None:
            async for value in flow:
                seen.append(value)
                if value == 2:
                    return

        task = asyncio.create_task(_consume())
        await asyncio.sleep(0)
        flow.value = 1
        await asyncio.sleep(0)
        flow.value = 2
        await asyncio.wait_for(task, 1.0)

        self.assertEqual(seen, [0, 1, 2])
        self.assertEqual(flow.collector_count, 0)

    async def test_equal_assignment_does_not_notify(self) -> None:
        flow = StateFlow("a")
        collector = flow.collect()
        self.assertEqual(await collector.__anext__(), "a")

        flow.value = "a"
        pending = asyncio.ensure_future(collector.__anext__())
        await asyncio.sleep(0.05)
        self.assertFalse(pending.done())
        pending.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pending
        await collector.aclose()

    async def test_updates_are_conflated(self) -> None:
        flow = StateFlow(0)
        collector = flow.collect()
        self.assertEqual(await collector.__anext__(), 0)

        flow.value = 1
        flow.value = 2
        flow.value = 3
        self.assertEqual(await collector.__anext__(), 3)
        await collector.aclose()

    async def test_first_waits_for_predicate(self) -> None:
        flow = StateFlow(0)
        waiter = asyncio.create_task(flow.first(lambda value: value >= 2))
        await asyncio.sleep(0)
        flow.value = 1
        await asyncio.sleep(0)
        self.assertFalse(waiter.done())
        flow.update(lambda value: value + 1)
        self.assertEqual(await asyncio.wait_for(waiter, 1.0), 2)

    async def test_first_returns_immediately_when_satisfied(self) -> None:
        flow = StateFlow("ready")
        self.assertEqual(await flow.first(lambda value: value == "ready"), "ready")


class TestOperators(unittest.IsolatedAsyncioTestCase):
    async def test_distinct_until_changed(self) -> None:
        values = await _collect(distinct_until_changed(_emit([1, 1, 2, 2, 1, 3, 3])))
        self.assertEqual(values, [1, 2, 1, 3])

    async def test_distinct_until_changed_with_key(self) -> None:
        source = _emit(["a", "A", "b", "B", "a"])
        values = await _collect(distinct_until_changed(source, key=str.lower))
        self.assertEqual(values, ["a", "b", "a"])

    async def test_debounce_drops_rapid_values(self) -> None:
        async def _bursts() -> AsyncIterator[int]:
            for value in (1, 2, 3):
                yield value
            await asyncio.sleep(0.2)
            yield 4

        values = await _collect(debounce(_bursts(), 0.05))
        self.assertEqual(values, [3, 4])

    async def test_debounce_flushes_pending_on_completion(self) -> None:
        values = await _collect(debounce(_emit([1, 2]), 10.0))
        self.assertEqual(values, [2])

    async def test_debounce_zero_timeout_passes_through(self) -> None:
        values = await _collect(debounce(_emit([1, 2, 3]), 0))
        self.assertEqual(values, [1, 2, 3])

    async def test_debounce_propagates_source_errors(self) -> None:
        async def _broken() -> AsyncIterator[int]:
            yield 1
            raise RuntimeError("source failed")

        with self.assertRaises(RuntimeError):
            await _collect(debounce(_broken(), 0.01))


class TestObservableLoadingCounter(unittest.IsolatedAsyncioTestCase):
    async def test_overlapping_operations(self) -> None:
        counter = ObservableLoadingCounter()
        counter.add_loader()
        counter.add_loader()
        counter.remove_loader()
        self.assertTrue(counter.observable.value)
        counter.remove_loader()
        self.assertFalse(counter.observable.value)

    async def test_underflow_is_ignored(self) -> None:
        counter = ObservableLoadingCounter()
        with self.assertLogs("showsync.reactive.loading", level="WARNING"):
            counter.remove_loader()
        self.assertEqual(counter.count, 0)

    async def test_collect_from_decrements_on_failure(self) -> None:
        counter = ObservableLoadingCounter()

        async def _fails() -> None:
            self.assertTrue(counter.observable.value)
            raise ValueError("boom")

        with self.assertRaises(ValueError):
            await counter.collect_from(_fails())
        self.assertEqual(counter.count, 0)
        self.assertFalse(counter.observable.value)


class TestChangeNotifier(unittest.IsolatedAsyncioTestCase):
    async def test_notifications_are_filtered_and_coalesced(self) -> None:
        notifier = ChangeNotifier()
        subscription = notifier.subscribe(["shows", "page_entries"])

        notifier.notify(["sync_runs"])
        notifier.notify(["shows"])
        notifier.notify(["page_entries", "sync_runs"])

        changed = await asyncio.wait_for(subscription.__anext__(), 1.0)
        self.assertEqual(changed, frozenset({"shows", "page_entries"}))

        subscription.close()
        self.assertEqual(notifier.subscriber_count, 0)
        with self.assertRaises(StopAsyncIteration):
            await subscription.__anext__()

    async def test_close_wakes_blocked_consumer(self) -> None:
        notifier = ChangeNotifier()
        received: list[frozenset[str]] = []

        async with notifier.subscribe(["shows"]) as subscription:

            async def _consume() -> None:
                async for tables in subscription:
                    received.append(tables)

            task = asyncio.create_task(_consume())
            await asyncio.sleep(0)
            subscription.close()
            await asyncio.wait_for(task, 1.0)

        self.assertEqual(received, [])
