"""Centralized provider module for record store, remote source and engine construction.

This module provides factory functions that turn configuration into concrete
collaborators. Swap implementations here without changing the sync engine.

Default implementations:
- RecordStore: SqliteRecordStore (local file, no external services required)
- RemoteSource: HttpRemoteSource (requests against a JSON array endpoint)
"""

import structlog

from feedsync.ingestion.http_source import HttpRemoteSource
from feedsync.ingestion.remote_source import RemoteSource
from feedsync.models.config import AppConfig, RemoteSourceConfig, StoreConfig
from feedsync.storage.record_store import InMemoryRecordStore, RecordStore
from feedsync.storage.sqlite_store import SqliteRecordStore
from feedsync.sync.engine import StateListener, SyncEngine

log = structlog.stdlib.get_logger()


def get_record_store(config: StoreConfig) -> RecordStore:
    """Get the configured record store implementation.

    Args:
        config: Store configuration section

    Returns:
        RecordStore instance

    Raises:
        ValueError: If the SQLite path is empty
        RuntimeError: If the store cannot be opened
    """
    if config.backend == "memory":
        log.info("initializing_record_store", provider="memory")
        return InMemoryRecordStore()

    if not config.path or not config.path.strip():
        error_msg = "store.path cannot be empty for the sqlite backend"
        log.error("get_record_store_failed", error=error_msg)
        raise ValueError(error_msg)

    try:
        log.info("initializing_record_store", provider="sqlite", path=config.path)
        return SqliteRecordStore(config.path)
    except Exception as e:
        log.error(
            "get_record_store_failed",
            path=config.path,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise RuntimeError(f"Failed to open record store at '{config.path}': {e}") from e


def get_remote_source(config: RemoteSourceConfig) -> RemoteSource:
    """Get the configured remote source implementation.

    Args:
        config: Remote source configuration section

    Returns:
        RemoteSource instance
    """
    log.info("initializing_remote_source", provider="http", base_url=str(config.base_url))
    return HttpRemoteSource(
        base_url=str(config.base_url),
        timeout_seconds=config.timeout_seconds,
        max_retries=config.max_retries,
        retry_base_delay=config.retry_base_delay,
    )


def build_engine(
    config: AppConfig,
    store: RecordStore | None = None,
    remote: RemoteSource | None = None,
    on_state_change: StateListener | None = None,
) -> SyncEngine:
    """Build a sync engine from configuration.

    Args:
        config: Application configuration
        store: Optional record store (created from config if None)
        remote: Optional remote source (created from config if None)
        on_state_change: Optional state listener

    Returns:
        SyncEngine wired to its collaborators
    """
    return SyncEngine(
        store=store if store is not None else get_record_store(config.store),
        remote=remote if remote is not None else get_remote_source(config.remote),
        page_size=config.sync.page_size,
        prefetch_distance=config.sync.prefetch_distance,
        on_state_change=on_state_change,
    )
