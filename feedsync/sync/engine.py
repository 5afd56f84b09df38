"""Sync engine reconciling a paginated remote source with the local record store."""

import asyncio
from typing import Callable

import structlog

from feedsync.ingestion.errors import FetchError
from feedsync.ingestion.remote_source import RemoteSource
from feedsync.models.record import Record, SyncState, SyncStatus
from feedsync.storage.errors import RecordNotFoundError, RecordStoreError
from feedsync.storage.record_store import RecordStore
from feedsync.sync.merge import merge_records
from feedsync.utils.logging_config import fetch_log_context

log = structlog.stdlib.get_logger()

StateListener = Callable[[SyncState], None]


def next_page_number(record_count: int, page_size: int) -> int:
    """Page to request after ``record_count`` materialized records."""
    return record_count // page_size + 1


def current_page_number(record_count: int, page_size: int) -> int:
    """Last page covered by ``record_count`` materialized records (1 when empty)."""
    if record_count == 0:
        return 1
    return (record_count - 1) // page_size + 1


class SyncEngine:
    """Owns fetch orchestration, merge policy and the sync state machine.

    All methods must be called from the thread running the engine's event
    loop; ``refresh`` and ``load_more`` additionally need that loop to be
    running, since they dispatch the fetch as an ``asyncio.Task``. State
    listeners are invoked on that same thread.
    """

    def __init__(
        self,
        store: RecordStore,
        remote: RemoteSource,
        page_size: int = 20,
        prefetch_distance: int = 5,
        on_state_change: StateListener | None = None,
    ):
        """
        Initialize sync engine and load cached records.

        Args:
            store: Local record store
            remote: Remote page source
            page_size: Records requested per page
            prefetch_distance: Rows from the end at which ``load_more_if_needed`` fires
            on_state_change: Optional listener invoked on every state transition
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")

        self._store: RecordStore = store
        self._remote: RemoteSource = remote
        self._page_size = page_size
        self._prefetch_distance = prefetch_distance
        self.on_state_change: StateListener | None = on_state_change

        self._state = SyncState.idle()
        self._records: tuple[Record, ...] = tuple(store.all_ordered_by_id_ascending())
        self._is_fetching = False
        self._exhausted = False
        self._task: asyncio.Task | None = None

        log.info(
            "sync_engine_initialized",
            page_size=page_size,
            cached_records=len(self._records),
        )

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def current_records(self) -> tuple[Record, ...]:
        """Store contents in ascending id order as of the last publication."""
        return self._records

    @property
    def is_fetching(self) -> bool:
        return self._is_fetching

    @property
    def is_exhausted(self) -> bool:
        return self._exhausted

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def current_page(self) -> int:
        return current_page_number(len(self._records), self._page_size)

    @property
    def next_page(self) -> int:
        return next_page_number(len(self._records), self._page_size)

    def refresh(self) -> asyncio.Task | None:
        """
        Fetch the first page and merge it.

        Returns:
            The dispatched fetch task, or None if a fetch is already in flight
        """
        if self._is_fetching:
            log.info("refresh_ignored", reason="fetch_in_flight")
            return None
        return self._start_fetch(1, "refresh", SyncState.refreshing())

    def load_more(self) -> asyncio.Task | None:
        """
        Fetch the page following the locally materialized records.

        Once the feed is exhausted no request is made and ``EndOfData`` is
        published again.

        Returns:
            The dispatched fetch task, or None if nothing was dispatched
        """
        if self._is_fetching:
            log.info("load_more_ignored", reason="fetch_in_flight")
            return None
        if self._exhausted or self._state.status is SyncStatus.END_OF_DATA:
            log.info("load_more_ignored", reason="end_of_data")
            self._set_state(SyncState.end_of_data())
            return None
        return self._start_fetch(self.next_page, "load_more", SyncState.loading_more())

    def load_more_if_needed(self, index: int) -> asyncio.Task | None:
        """Request the next page when row ``index`` is ``prefetch_distance`` rows from the end."""
        if index != len(self._records) - self._prefetch_distance:
            return None
        return self.load_more()

    def toggle_like(self, record_id: int) -> Record:
        """
        Invert the like flag of a record and persist it.

        Args:
            record_id: Id of a record in ``current_records``

        Returns:
            The updated record

        Raises:
            RecordNotFoundError: If the id is not in ``current_records`` or the store
        """
        index = self._index_of(record_id)
        record = self._records[index]
        liked = not record.liked

        self._store.update_liked(record_id, liked)
        updated = record.with_liked(liked)
        self._records = self._records[:index] + (updated,) + self._records[index + 1 :]

        log.info("record_like_toggled", record_id=record_id, liked=liked)
        return updated

    def record(self, record_id: int) -> Record:
        """Return the record with this id from ``current_records``."""
        return self._records[self._index_of(record_id)]

    def _index_of(self, record_id: int) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise RecordNotFoundError(record_id)

    def _start_fetch(
        self, page_number: int, operation: str, in_progress: SyncState
    ) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        self._is_fetching = True
        self._task = loop.create_task(self._complete_fetch(page_number, operation))
        self._set_state(in_progress)
        return self._task

    async def _complete_fetch(self, page_number: int, operation: str) -> None:
        with fetch_log_context(page_number, operation):
            try:
                outcome = await self._fetch_and_merge(page_number)
            except Exception as e:
                log.exception("fetch_crashed", error_type=type(e).__name__)
                outcome = SyncState.failed(f"Unexpected error: {e}", e)
            finally:
                self._is_fetching = False
                self._task = None
            self._set_state(outcome)

    async def _fetch_and_merge(self, page_number: int) -> SyncState:
        log.info("fetch_started", page_number=page_number, page_size=self._page_size)

        try:
            posts = await self._remote.fetch_page(page_number, self._page_size)
        except FetchError as e:
            log.warning(
                "fetch_failed",
                page_number=page_number,
                error_type=type(e).__name__,
                reason=e.reason,
            )
            return SyncState.failed(e.reason, e)

        if not posts:
            self._exhausted = True
            log.info("end_of_data_reached", page_number=page_number)
            return SyncState.end_of_data()

        try:
            report = merge_records(self._store, posts)
        except RecordStoreError as e:
            log.error("merge_failed", page_number=page_number, error=str(e))
            # Inserts made before the failure are already stored.
            self._reload_records()
            return SyncState.failed(f"Local store error: {e}", e)

        self._reload_records()
        if not report.has_changes:
            log.info("page_already_stored", page_number=page_number, skipped=report.skipped)
        log.info(
            "fetch_completed",
            page_number=page_number,
            inserted=report.inserted,
            total_records=len(self._records),
        )
        return SyncState.idle()

    def _reload_records(self) -> None:
        self._records = tuple(self._store.all_ordered_by_id_ascending())

    def _set_state(self, state: SyncState) -> None:
        previous = self._state
        self._state = state
        log.info("state_changed", previous=str(previous), current=str(state))
        if self.on_state_change is not None:
            self.on_state_change(state)
