"""Result and work models used during sync orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from enum import Enum

from pydantic import BaseModel


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING_PAGE = "fetching_page"
    RESOLVING = "resolving"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PageEntryInput:
    """A resolved show and its position within the fetched page."""

    show_id: int
    page_order: int
    last_watched_at: datetime | None = None


@dataclass(frozen=True)
class PageWriteOutcome:
    entries_written: int
    placeholders_created: int


class SyncResult(BaseModel):
    """Result of one sync invocation for a kind."""

    kind: str
    state: SyncState = SyncState.IDLE
    start_page: int = 0
    last_page: int | None = None
    pages_written: int = 0
    items_written: int = 0
    placeholders_created: int = 0
    skipped: bool = False
    error: str | None = None
    retryable: bool = False
    correlation_id: str | None = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state is SyncState.DONE
