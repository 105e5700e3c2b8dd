"""Protocol definitions (ports) for paginated sync.

Keeping these as Protocols isolates the orchestration from the concrete HTTP
implementation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from showsync.adapters.trakt.models import RemoteItem


class RemotePageSource(Protocol):
    """One kind's paginated remote list, addressed by zero-based page index."""

    async def fetch(self, page_index: int, page_size: int) -> list[RemoteItem]: ...
