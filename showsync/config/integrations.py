from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TraktConfig(BaseModel):
    """Remote show-list API configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_url: str = Field(default="https://api.trakt.tv", validation_alias="TRAKT_API_URL")
    client_id: str = Field(default="", validation_alias="TRAKT_CLIENT_ID")
    access_token: str | None = Field(default=None, validation_alias="TRAKT_ACCESS_TOKEN")
    timeout_sec: float = Field(default=30.0, validation_alias="TRAKT_TIMEOUT_SEC")
    extended: str = Field(default="noseasons", validation_alias="TRAKT_EXTENDED")

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or "https://api.trakt.tv").strip()
        if not url.startswith(("http://", "https://")):
            msg = "TRAKT_API_URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("access_token", mode="before")
    @classmethod
    def _blank_token_is_none(cls, value: Any) -> str | None:
        if value in (None, ""):
            return None
        return str(value).strip() or None

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        if value in (None, ""):
            return 30.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "Trakt timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0:
            msg = "Trakt timeout must be positive"
            raise ValueError(msg)
        return parsed

    @field_validator("extended", mode="before")
    @classmethod
    def _validate_extended(cls, value: Any) -> str:
        extended = str(value or "noseasons").lower().strip()
        valid = {"min", "full", "noseasons"}
        if extended not in valid:
            msg = f"TRAKT_EXTENDED must be one of: {', '.join(sorted(valid))}"
            raise ValueError(msg)
        return extended


class ImageConfig(BaseModel):
    """Poster image URL configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_url: str = Field(
        default="https://image.tmdb.org/t/p/",
        validation_alias="TMDB_IMAGE_BASE_URL",
    )
    poster_sizes: list[str] = Field(
        default=["w92", "w154", "w185", "w342", "w500", "w780", "original"],
        validation_alias="TMDB_POSTER_SIZES",
    )

    @field_validator("base_url", mode="before")
    @classmethod
    def _ensure_trailing_slash(cls, value: Any) -> str:
        url = str(value or "https://image.tmdb.org/t/p/").strip()
        return url if url.endswith("/") else f"{url}/"

    @field_validator("poster_sizes", mode="before")
    @classmethod
    def _parse_sizes(cls, value: Any) -> list[str]:
        if isinstance(value, list):
            return [str(size) for size in value]
        if isinstance(value, str):
            return [size.strip() for size in value.split(",") if size.strip()]
        return ["w92", "w154", "w185", "w342", "w500", "w780", "original"]
