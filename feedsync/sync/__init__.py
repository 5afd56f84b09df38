"""Synchronization components for merging remote pages into the local store."""

from feedsync.sync.engine import SyncEngine, current_page_number, next_page_number
from feedsync.sync.merge import merge_records
from feedsync.sync.models import MergeReport

__all__ = [
    "MergeReport",
    "SyncEngine",
    "current_page_number",
    "merge_records",
    "next_page_number",
]
