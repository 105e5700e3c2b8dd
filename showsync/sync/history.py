"""Per-kind record of the last sync outcome."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from showsync.core.time_utils import ensure_utc, utc_now
from showsync.db.models import SyncRun
from showsync.sync.constants import SYNC_RUNS_TABLE

if TYPE_CHECKING:
    from showsync.db.session import DatabaseSessionManager


@dataclass(frozen=True)
class SyncRunInfo:
    kind: str
    last_success_at: datetime | None
    last_failure_at: datetime | None
    last_error: str | None
    pages_written: int

    @property
    def failed_last(self) -> bool:
        """True when the most recent outcome was a failure."""
        if self.last_failure_at is None:
            return False
        if self.last_success_at is None:
            return True
        return self.last_failure_at > self.last_success_at


def _to_info(row: SyncRun) -> SyncRunInfo:
    return SyncRunInfo(
        kind=row.kind,
        last_success_at=ensure_utc(row.last_success_at),
        last_failure_at=ensure_utc(row.last_failure_at),
        last_error=row.last_error,
        pages_written=row.pages_written or 0,
    )


class SyncRunRepository:
    def __init__(self, session: DatabaseSessionManager) -> None:
        self._session = session

    async def get(self, kind: str) -> SyncRunInfo | None:
        def _query() -> SyncRunInfo | None:
            row = SyncRun.get_or_none(SyncRun.kind == kind)
            return _to_info(row) if row is not None else None

        return await self._session.execute(_query, operation_name="get_sync_run", read_only=True)

    async def record_success(self, kind: str, pages_written: int) -> None:
        now = utc_now()

        def _upsert() -> None:
            SyncRun.insert(
                kind=kind, last_success_at=now, pages_written=pages_written, updated_at=now
            ).on_conflict(
                conflict_target=[SyncRun.kind],
                update={
                    SyncRun.last_success_at: now,
                    SyncRun.pages_written: pages_written,
                    SyncRun.updated_at: now,
                },
            ).execute()

        await self._session.execute(
            _upsert, operation_name="record_sync_success", tables=(SYNC_RUNS_TABLE,)
        )

    async def record_failure(self, kind: str, error: str) -> None:
        now = utc_now()

        def _upsert() -> None:
            SyncRun.insert(
                kind=kind, last_failure_at=now, last_error=error, updated_at=now
            ).on_conflict(
                conflict_target=[SyncRun.kind],
                update={
                    SyncRun.last_failure_at: now,
                    SyncRun.last_error: error,
                    SyncRun.updated_at: now,
                },
            ).execute()

        await self._session.execute(
            _upsert, operation_name="record_sync_failure", tables=(SYNC_RUNS_TABLE,)
        )

    async def is_fresh(self, kind: str, max_age: timedelta) -> bool:
        """True when ``kind`` synced successfully within ``max_age``."""
        info = await self.get(kind)
        if info is None or info.last_success_at is None:
            return False
        return utc_now() - info.last_success_at < max_age
