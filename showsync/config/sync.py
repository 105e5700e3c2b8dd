from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


def _positive_number(cls: type[BaseModel], value: Any, info: ValidationInfo) -> float:
    if value in (None, ""):
        return float(cls.model_fields[info.field_name].default)
    try:
        parsed = float(str(value))
    except ValueError as exc:
        msg = f"{info.field_name.replace('_', ' ')} must be a valid number"
        raise ValueError(msg) from exc
    if parsed <= 0:
        msg = f"{info.field_name.replace('_', ' ').capitalize()} must be positive"
        raise ValueError(msg)
    return parsed


class SyncConfig(BaseModel):
    """Page fetching and retry policy for the sync orchestrator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page_size: int = Field(default=21, validation_alias="SYNC_PAGE_SIZE")
    max_retries: int = Field(default=3, validation_alias="SYNC_MAX_RETRIES")
    retry_base_delay: float = Field(default=0.5, validation_alias="SYNC_RETRY_BASE_DELAY")
    retry_max_delay: float = Field(default=5.0, validation_alias="SYNC_RETRY_MAX_DELAY")
    max_pages: int = Field(default=50, validation_alias="SYNC_MAX_PAGES")
    min_refresh_interval_sec: float = Field(
        default=3600.0,
        validation_alias="SYNC_MIN_REFRESH_INTERVAL_SEC",
        description="Automatic (not user-initiated) refreshes are skipped within this window",
    )

    @field_validator("page_size", "max_pages", mode="before")
    @classmethod
    def _validate_positive_int(cls, value: Any, info: ValidationInfo) -> int:
        parsed = _positive_number(cls, value, info)
        if parsed != int(parsed):
            msg = f"{info.field_name.replace('_', ' ')} must be a whole number"
            raise ValueError(msg)
        return int(parsed)

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_retries(cls, value: Any) -> int:
        if value in (None, ""):
            return 3
        try:
            parsed = int(str(value))
        except ValueError as exc:
            msg = "Sync max retries must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 10:
            msg = "Sync max retries must be between 0 and 10"
            raise ValueError(msg)
        return parsed

    @field_validator(
        "retry_base_delay", "retry_max_delay", "min_refresh_interval_sec", mode="before"
    )
    @classmethod
    def _validate_delay(cls, value: Any, info: ValidationInfo) -> float:
        return _positive_number(cls, value, info)


class PagingConfig(BaseModel):
    """Cursor window sizes and UI loading-signal debounce."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page_size: int = Field(default=60, validation_alias="PAGING_PAGE_SIZE")
    prefetch_distance: int = Field(default=20, validation_alias="PAGING_PREFETCH_DISTANCE")
    loading_debounce_sec: float = Field(default=2.0, validation_alias="LOADING_DEBOUNCE_SEC")

    @field_validator("page_size", mode="before")
    @classmethod
    def _validate_page_size(cls, value: Any, info: ValidationInfo) -> int:
        return int(_positive_number(cls, value, info))

    @field_validator("prefetch_distance", mode="before")
    @classmethod
    def _validate_prefetch(cls, value: Any) -> int:
        if value in (None, ""):
            return 20
        try:
            parsed = int(str(value))
        except ValueError as exc:
            msg = "Prefetch distance must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0:
            msg = "Prefetch distance must not be negative"
            raise ValueError(msg)
        return parsed

    @field_validator("loading_debounce_sec", mode="before")
    @classmethod
    def _validate_debounce(cls, value: Any) -> float:
        if value in (None, ""):
            return 2.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "Loading debounce must be a valid number"
            raise ValueError(msg) from exc
        if parsed < 0:
            msg = "Loading debounce must not be negative"
            raise ValueError(msg)
        return parsed
