"""Peewee ORM models for the local show store."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import peewee

from showsync.core.time_utils import utc_now

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


class UtcDateTimeField(peewee.DateTimeField):
    """Store datetimes as naive UTC and read them back timezone-aware."""

    def db_value(self, value: Any) -> Any:
        if isinstance(value, datetime) and value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return super().db_value(value)

    def python_value(self, value: Any) -> Any:
        value = super().python_value(value)
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        if hasattr(self, "updated_at"):
            self.updated_at = utc_now()
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


class Show(BaseModel):
    """Durable local record for a remote show.

    Created as a placeholder the first time a remote key is seen and reused on
    every later sync, regardless of the kind that saw it.
    """

    id = peewee.AutoField()
    trakt_id = peewee.BigIntegerField(unique=True)
    slug = peewee.TextField(null=True)
    tmdb_id = peewee.BigIntegerField(null=True)
    imdb_id = peewee.TextField(null=True)
    title = peewee.TextField(null=True)
    year = peewee.IntegerField(null=True)
    overview = peewee.TextField(null=True)
    is_placeholder = peewee.BooleanField(default=True)
    created_at = UtcDateTimeField(default=utc_now)
    updated_at = UtcDateTimeField(default=utc_now)

    class Meta:
        table_name = "shows"
        indexes = ((("title",), False),)


class PageEntry(BaseModel):
    """Position of a show within one page of a sync kind."""

    id = peewee.AutoField()
    kind = peewee.TextField()
    page = peewee.IntegerField()
    page_order = peewee.IntegerField()
    show = peewee.ForeignKeyField(Show, backref="page_entries", on_delete="CASCADE")
    synced_at = UtcDateTimeField(default=utc_now)
    last_watched_at = UtcDateTimeField(null=True)

    class Meta:
        table_name = "page_entries"
        indexes = (
            (("kind", "page", "page_order"), True),
            (("kind", "show"), True),
        )


class SyncRun(BaseModel):
    """Last outcome of a sync per kind."""

    kind = peewee.TextField(primary_key=True)
    last_success_at = UtcDateTimeField(null=True)
    last_failure_at = UtcDateTimeField(null=True)
    last_error = peewee.TextField(null=True)
    pages_written = peewee.IntegerField(default=0)
    updated_at = UtcDateTimeField(default=utc_now)

    class Meta:
        table_name = "sync_runs"


ALL_MODELS: tuple[type[BaseModel], ...] = (Show, PageEntry, SyncRun)
