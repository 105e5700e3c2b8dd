"""Retry wrapper for page fetches.

Transient failures are retried with bounded exponential backoff and jitter;
fatal failures are raised immediately.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, TypeVar

from showsync.sync.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_JITTER,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_MAX_RETRIES,
)
from showsync.sync.errors import is_transient_error

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def calculate_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    jitter: float = DEFAULT_JITTER,
) -> float:
    """Delay before retry number ``attempt`` (0-indexed), capped at ``max_delay``.

    Jitter adds up to ``jitter * delay`` on top of the capped delay.
    """
    delay = min(base_delay * (backoff_factor**attempt), max_delay)
    return delay + delay * jitter * random.random()


class RetryExecutor:
    """Run an async operation, retrying transient failures.

    Attributes:
        max_retries: Retries after the first attempt (3 means 4 attempts total)
        base_delay: Delay before the first retry in seconds
        max_delay: Upper bound on the backoff delay before jitter
    """

    def __init__(
        self,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        jitter: float = DEFAULT_JITTER,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self._sleep = sleep

    async def run(
        self,
        func: Callable[[], Awaitable[T]],
        *,
        operation_name: str,
        correlation_id: str | None = None,
    ) -> T:
        attempt = 0
        while True:
            try:
                result = await func()
            except Exception as exc:
                if not is_transient_error(exc):
                    raise
                if attempt >= self.max_retries:
                    logger.warning(
                        "sync_retry_exhausted",
                        extra={
                            "correlation_id": correlation_id,
                            "operation": operation_name,
                            "attempts": attempt + 1,
                            "error": str(exc),
                        },
                    )
                    raise

                delay = calculate_delay(
                    attempt, self.base_delay, self.max_delay, self.backoff_factor, self.jitter
                )
                logger.info(
                    "sync_retrying",
                    extra={
                        "correlation_id": correlation_id,
                        "operation": operation_name,
                        "attempt": attempt + 1,
                        "max_retries": self.max_retries,
                        "delay_seconds": round(delay, 3),
                        "error": str(exc),
                    },
                )
                await self._sleep(delay)
                attempt += 1
                continue

            if attempt > 0:
                logger.info(
                    "sync_retry_succeeded",
                    extra={
                        "correlation_id": correlation_id,
                        "operation": operation_name,
                        "attempts": attempt + 1,
                    },
                )
            return result
