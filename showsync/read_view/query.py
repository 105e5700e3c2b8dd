"""Read-model types for synchronized show lists."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003 - used in dataclass fields
from enum import Enum


class SortOption(str, Enum):
    SUPER_SORT = "super_sort"
    LAST_WATCHED = "last_watched"
    ALPHABETICAL = "alphabetical"


@dataclass(frozen=True)
class ListQuery:
    """Which entries to read and in what order.

    ``SUPER_SORT`` keeps the remote ordering (page, then position within page).
    """

    kind: str
    filter: str | None = None
    sort: SortOption = SortOption.SUPER_SORT

    @property
    def normalized_filter(self) -> str | None:
        if self.filter is None:
            return None
        stripped = self.filter.strip()
        return stripped or None


@dataclass(frozen=True)
class ListItem:
    """A page entry joined with its show."""

    entry_id: int
    show_id: int
    kind: str
    page: int
    page_order: int
    title: str | None
    year: int | None
    is_placeholder: bool
    tmdb_id: int | None
    synced_at: datetime | None
    last_watched_at: datetime | None
