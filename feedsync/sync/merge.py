"""Deduplicating merge of fetched pages into the record store."""

from typing import Sequence

import structlog

from feedsync.models.record import RemotePost
from feedsync.storage.record_store import RecordStore
from feedsync.sync.models import MergeReport

log = structlog.stdlib.get_logger()


def merge_records(store: RecordStore, fetched: Sequence[RemotePost]) -> MergeReport:
    """
    Insert every fetched post whose id is not stored yet.

    Presence is resolved with a single bulk ``existing_ids`` query. Stored
    records are never rewritten: their content and like flag stay as they
    were on first sighting, even if the remote payload changed since.

    Args:
        store: Record store to merge into
        fetched: Posts of one remote page

    Returns:
        MergeReport listing inserted and skipped ids

    Raises:
        RecordStoreError: If the store rejects an insert; the merge stops there
    """
    known_ids = store.existing_ids({post.id for post in fetched})

    inserted_ids: list[int] = []
    skipped_ids: list[int] = []
    for post in fetched:
        if post.id in known_ids:
            skipped_ids.append(post.id)
            continue
        store.insert(post.to_record())
        known_ids.add(post.id)
        inserted_ids.append(post.id)

    report = MergeReport(fetched=len(fetched), inserted_ids=inserted_ids, skipped_ids=skipped_ids)
    log.info(
        "merge_completed",
        fetched=report.fetched,
        inserted=report.inserted,
        skipped=report.skipped,
    )
    return report
