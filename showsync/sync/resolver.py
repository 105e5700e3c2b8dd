"""Map remote shows to durable local identifiers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import peewee

from showsync.db.models import Show, database_proxy
from showsync.sync.constants import SHOWS_TABLE
from showsync.sync.errors import ConstraintViolation

if TYPE_CHECKING:
    from showsync.adapters.trakt.models import RemoteItem
    from showsync.db.session import DatabaseSessionManager

logger = logging.getLogger(__name__)


def _find_show_id(trakt_id: int) -> int | None:
    row = Show.select(Show.id).where(Show.trakt_id == trakt_id).first()
    return row.id if row is not None else None


class ShowResolver:
    """Resolve remote items to ``Show`` ids, creating placeholders on first sight.

    The ``*_in_transaction`` methods must run inside an open transaction (the
    orchestrator calls them from its page transaction). ``resolve`` is the
    standalone async entry point and opens its own.
    """

    def __init__(self, session: DatabaseSessionManager | None = None) -> None:
        self._session = session

    def resolve_in_transaction(self, item: RemoteItem) -> tuple[int, bool]:
        """Return ``(show_id, created)`` for ``item``.

        A concurrent insert of the same remote key loses the unique-constraint
        race; the loser re-reads and returns the winner's id.
        """
        trakt_id = item.remote_key
        existing = _find_show_id(trakt_id)
        if existing is not None:
            return existing, False

        show = item.show
        try:
            # Savepoint, so a conflict does not abort the page transaction
            with database_proxy.atomic():
                created = Show.create(
                    trakt_id=trakt_id,
                    slug=show.ids.slug,
                    tmdb_id=show.ids.tmdb,
                    imdb_id=show.ids.imdb,
                    title=show.title,
                    year=show.year,
                    overview=show.overview,
                    is_placeholder=True,
                )
        except peewee.IntegrityError as exc:
            winner = _find_show_id(trakt_id)
            if winner is None:
                raise ConstraintViolation(
                    f"Show {trakt_id} conflicted on insert but could not be re-read"
                ) from exc
            logger.debug("show_placeholder_conflict_recovered", extra={"trakt_id": trakt_id})
            return winner, False

        logger.debug(
            "show_placeholder_created", extra={"trakt_id": trakt_id, "show_id": created.id}
        )
        return created.id, True

    def resolve_many_in_transaction(self, items: list[RemoteItem]) -> list[tuple[int, bool]]:
        return [self.resolve_in_transaction(item) for item in items]

    async def resolve(self, item: RemoteItem) -> int:
        if self._session is None:
            raise RuntimeError("ShowResolver needs a session for standalone resolution")
        show_id, _created = await self._session.transaction(
            self.resolve_in_transaction,
            item,
            operation_name="resolve_show",
            tables=(SHOWS_TABLE,),
        )
        return show_id
