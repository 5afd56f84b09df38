"""Local record storage for the feed synchronization engine."""

from feedsync.storage.errors import DuplicateRecordError, RecordNotFoundError, RecordStoreError
from feedsync.storage.record_store import InMemoryRecordStore, RecordStore
from feedsync.storage.sqlite_store import SqliteRecordStore

__all__ = [
    "DuplicateRecordError",
    "InMemoryRecordStore",
    "RecordNotFoundError",
    "RecordStore",
    "RecordStoreError",
    "SqliteRecordStore",
]
