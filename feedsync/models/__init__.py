"""Data models for the feed synchronization engine."""

from feedsync.models.config import (
    AppConfig,
    LoggingConfig,
    RemoteSourceConfig,
    StoreConfig,
    SyncConfig,
)
from feedsync.models.record import Record, RemotePost, SyncState, SyncStatus

__all__ = [
    "Record",
    "RemotePost",
    "SyncState",
    "SyncStatus",
    "AppConfig",
    "LoggingConfig",
    "RemoteSourceConfig",
    "StoreConfig",
    "SyncConfig",
]
