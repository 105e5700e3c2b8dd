"""Database session management.

``DatabaseSessionManager`` owns the SQLite connection and is the single
mutation gate for the store:

- writes and transactions are serialized by an asyncio write lock and run in a
  worker thread so the event loop never blocks on SQLite
- "database is locked/busy" errors are retried with exponential backoff
- committed transactions publish table-change notifications through a
  ``ChangeNotifier`` so read views can re-query
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import peewee

from showsync.db.models import ALL_MODELS, database_proxy
from showsync.db.notifier import ChangeNotifier

T = TypeVar("T")

DB_OPERATION_TIMEOUT = 30.0
DB_MAX_RETRIES = 3


@dataclass
class DatabaseSessionManager:
    """Peewee-backed database session manager.

    Attributes:
        path: Path to the SQLite database file, or ":memory:" for in-memory
        operation_timeout: Default timeout for database operations in seconds
        max_retries: Maximum retries when the database is locked or busy
        notifier: Receives the names of tables touched by each committed write
    """

    path: str
    operation_timeout: float = field(default=DB_OPERATION_TIMEOUT)
    max_retries: int = field(default=DB_MAX_RETRIES)
    notifier: ChangeNotifier = field(default_factory=ChangeNotifier)
    _logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _database: peewee.SqliteDatabase = field(init=False)
    _write_lock: asyncio.Lock = field(init=False)

    def __post_init__(self) -> None:
        in_memory = self.path == ":memory:"
        if not in_memory:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        # An in-memory database lives only as long as its one connection, so
        # every worker thread has to share it instead of opening its own.
        self._database = peewee.SqliteDatabase(
            self.path,
            pragmas={
                "journal_mode": "memory" if in_memory else "wal",
                "synchronous": "normal",
                "foreign_keys": 1,
            },
            check_same_thread=False,
            thread_safe=not in_memory,
        )
        database_proxy.initialize(self._database)
        self._write_lock = asyncio.Lock()

    @property
    def database(self) -> peewee.SqliteDatabase:
        """Access the underlying Peewee database instance."""
        return self._database

    @property
    def in_memory(self) -> bool:
        return self.path == ":memory:"

    @contextlib.contextmanager
    def connection_scope(self) -> Iterator[None]:
        """Open a connection for the duration of one operation.

        The shared in-memory connection stays open for the manager's lifetime.
        """
        if self.in_memory:
            if self._database.is_closed():
                self._database.connect()
            yield
            return
        with self._database.connection_context():
            yield

    def migrate(self) -> None:
        """Create tables if they do not exist."""
        with self.connection_scope():
            self._database.create_tables(ALL_MODELS, safe=True)
        self._logger.info("db_migrated", extra={"path": self._mask_path(self.path)})

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()

    async def execute(
        self,
        operation: Callable[..., T],
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_operation",
        read_only: bool = False,
        tables: Iterable[str] = (),
        **kwargs: Any,
    ) -> T:
        """Run a single database operation in a worker thread.

        Args:
            operation: The database operation to execute
            *args: Positional arguments for the operation
            timeout: Timeout in seconds (default: self.operation_timeout)
            operation_name: Name for logging purposes
            read_only: Read operations skip the write lock (WAL isolation)
            tables: Tables modified by the operation, announced on success
            **kwargs: Keyword arguments for the operation

        Returns:
            Result of the operation
        """

        def _op_wrapper() -> T:
            with self.connection_scope():
                return operation(*args, **kwargs)

        result = await self._run_with_retry(
            _op_wrapper,
            timeout=timeout,
            operation_name=operation_name,
            needs_lock=not read_only or self.in_memory,
        )
        if not read_only:
            self.notifier.notify(tables)
        return result

    async def transaction(
        self,
        operation: Callable[..., T],
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_transaction",
        tables: Iterable[str] = (),
        **kwargs: Any,
    ) -> T:
        """Run ``operation`` inside one atomic transaction.

        Either every change made by ``operation`` is committed or none is.
        Change notifications for ``tables`` are published only after commit.
        """

        def _execute_in_transaction() -> T:
            with self.connection_scope(), self._database.atomic():
                return operation(*args, **kwargs)

        result = await self._run_with_retry(
            _execute_in_transaction,
            timeout=timeout,
            operation_name=operation_name,
            needs_lock=True,
        )
        self.notifier.notify(tables)
        return result

    async def _run_with_retry(
        self,
        func: Callable[[], T],
        *,
        timeout: float | None,
        operation_name: str,
        needs_lock: bool,
    ) -> T:
        if timeout is None:
            timeout = self.operation_timeout

        retries = 0
        while True:
            try:

                async def _run() -> T:
                    if not needs_lock:
                        return await asyncio.to_thread(func)
                    async with self._write_lock:
                        return await asyncio.to_thread(func)

                return await asyncio.wait_for(_run(), timeout=timeout)

            except TimeoutError:
                self._logger.exception(
                    "db_operation_timeout",
                    extra={"operation": operation_name, "timeout": timeout, "retries": retries},
                )
                raise

            except peewee.OperationalError as e:
                error_msg = str(e).lower()
                if ("locked" in error_msg or "busy" in error_msg) and retries < self.max_retries:
                    retries += 1
                    wait_time = 0.1 * (2**retries)
                    self._logger.warning(
                        "db_locked_retrying",
                        extra={
                            "operation": operation_name,
                            "retry": retries,
                            "max_retries": self.max_retries,
                            "wait_time": wait_time,
                            "error": str(e),
                        },
                    )
                    await asyncio.sleep(wait_time)
                    continue

                self._logger.exception(
                    "db_operational_error",
                    extra={"operation": operation_name, "retries": retries, "error": str(e)},
                )
                raise

            except peewee.IntegrityError as e:
                self._logger.error(
                    "db_integrity_error",
                    extra={"operation": operation_name, "error": str(e)},
                )
                raise

    @staticmethod
    def _mask_path(path: str) -> str:
        """Mask a path for logging (show only parent/filename)."""
        try:
            p = Path(path)
            if not p.name:
                return str(p)
            parent = p.parent.name
            if parent:
                return f".../{parent}/{p.name}"
            return p.name
        except (OSError, ValueError, AttributeError):
            return "..."
