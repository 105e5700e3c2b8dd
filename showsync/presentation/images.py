"""Poster URL construction for TMDb image paths."""

from __future__ import annotations

from dataclasses import dataclass, field

from showsync.config.integrations import ImageConfig

_ORIGINAL = "original"


def _width_of(size: str) -> int | None:
    if size.startswith("w") and size[1:].isdigit():
        return int(size[1:])
    return None


@dataclass(frozen=True)
class ImageUrlProvider:
    """Build poster URLs from a base URL and the sizes the CDN offers.

    ``poster_url`` picks the smallest size at least as wide as requested,
    falling back to the largest available one.
    """

    base_url: str = "https://image.tmdb.org/t/p/"
    poster_sizes: tuple[str, ...] = field(
        default=("w92", "w154", "w185", "w342", "w500", "w780", _ORIGINAL)
    )

    @classmethod
    def from_config(cls, config: ImageConfig) -> ImageUrlProvider:
        return cls(base_url=config.base_url, poster_sizes=tuple(config.poster_sizes))

    def _size_for(self, width: int) -> str:
        sized = sorted(
            (_width_of(size), size)
            for size in self.poster_sizes
            if _width_of(size) is not None
        )
        for size_width, size in sized:
            if size_width >= width:
                return size
        if _ORIGINAL in self.poster_sizes:
            return _ORIGINAL
        if sized:
            return sized[-1][1]
        return _ORIGINAL

    def poster_url(self, path: str | None, width: int) -> str | None:
        if not path:
            return None
        base = self.base_url if self.base_url.endswith("/") else f"{self.base_url}/"
        return f"{base}{self._size_for(width)}/{path.lstrip('/')}"
