"""Read views over synchronized show lists."""

from showsync.read_view.cursor import BoundaryCallback, PagedCursor
from showsync.read_view.list_view import ListView
from showsync.read_view.query import ListItem, ListQuery, SortOption
from showsync.read_view.repository import ShowListRepository

__all__ = [
    "BoundaryCallback",
    "ListItem",
    "ListQuery",
    "ListView",
    "PagedCursor",
    "ShowListRepository",
    "SortOption",
]
