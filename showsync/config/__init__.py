from __future__ import annotations

from .database import DatabaseConfig
from .integrations import ImageConfig, TraktConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config
from .sync import PagingConfig, SyncConfig

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "ImageConfig",
    "PagingConfig",
    "RuntimeConfig",
    "Settings",
    "SyncConfig",
    "TraktConfig",
    "load_config",
]
