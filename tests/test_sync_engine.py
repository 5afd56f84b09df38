"""Tests for the sync engine state machine.

Covers:
- Single-flight fetch guard
- Page cursor derived from the local record count
- End-of-data terminality for load_more
- Failure handling for remote and store errors
- Optimistic like toggling, including during an in-flight fetch
"""

import asyncio
from typing import Callable

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from feedsync.ingestion.errors import DecodeError, FetchError, TransportError
from feedsync.ingestion.remote_source import RemoteSource
from feedsync.models.record import Record, RemotePost, SyncState, SyncStatus
from feedsync.storage.errors import DuplicateRecordError, RecordNotFoundError
from feedsync.storage.record_store import InMemoryRecordStore
from feedsync.sync.engine import SyncEngine, current_page_number, next_page_number


class FakeRemoteSource(RemoteSource):
    """Serves canned pages and records every request."""

    def __init__(self, pages: dict[int, list[RemotePost]] | None = None):
        self.pages: dict[int, list[RemotePost]] = pages or {}
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[int, int]] = []

    async def fetch_page(self, page_number: int, page_size: int) -> list[RemotePost]:
        self.calls.append((page_number, page_size))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.pages.get(page_number, []))


class BlindStore(InMemoryRecordStore):
    """Store that reports no existing ids, so the merge collides on insert."""

    def existing_ids(self, candidate_ids):
        return set()


class RejectingStore(InMemoryRecordStore):
    """Store whose insert fails for one id, after earlier inserts have landed."""

    def __init__(self, rejected_id: int):
        super().__init__()
        self.rejected_id = rejected_id

    def insert(self, record: Record) -> None:
        if record.id == self.rejected_id:
            raise DuplicateRecordError(record.id)
        super().insert(record)


def posts(first: int, last: int, title: str = "remote") -> list[RemotePost]:
    return [
        RemotePost(id=i, owner_id=i % 10 + 1, title=f"{title} {i}", body=f"body {i}")
        for i in range(first, last + 1)
    ]


def records(first: int, last: int) -> list[Record]:
    return [post.to_record() for post in posts(first, last, title="stored")]


def make_engine(
    store: InMemoryRecordStore | None = None,
    remote: FakeRemoteSource | None = None,
    page_size: int = 20,
) -> tuple[SyncEngine, FakeRemoteSource, list[SyncState]]:
    states: list[SyncState] = []
    remote = remote or FakeRemoteSource()
    engine = SyncEngine(
        store if store is not None else InMemoryRecordStore(),
        remote,
        page_size=page_size,
        on_state_change=states.append,
    )
    return engine, remote, states


async def drive(task: asyncio.Task | None) -> None:
    assert task is not None, "Expected a fetch to be dispatched"
    await task


async def run_fetch(start: Callable[[], asyncio.Task | None]) -> None:
    await drive(start())


class TestRefresh:
    def test_refresh_on_fresh_store_publishes_sorted_records(self) -> None:
        """Fresh store, page 1 with ids 1-20 delivered out of order."""
        engine, remote, states = make_engine(remote=FakeRemoteSource({1: posts(1, 20)[::-1]}))

        asyncio.run(run_fetch(engine.refresh))

        assert engine.state == SyncState.idle()
        assert [r.id for r in engine.current_records] == list(range(1, 21))
        assert all(not r.liked for r in engine.current_records)
        assert [s.status for s in states] == [SyncStatus.REFRESH_IN_PROGRESS, SyncStatus.IDLE]
        assert remote.calls == [(1, 20)]
        assert not engine.is_fetching

    def test_refresh_with_empty_first_page_reaches_end_of_data(self) -> None:
        engine, remote, states = make_engine()

        asyncio.run(run_fetch(engine.refresh))

        assert engine.state.status is SyncStatus.END_OF_DATA
        assert [s.status for s in states] == [
            SyncStatus.REFRESH_IN_PROGRESS,
            SyncStatus.END_OF_DATA,
        ]
        assert engine.current_records == ()

    def test_second_refresh_while_in_flight_is_dropped(self) -> None:
        """Two immediate refresh calls produce one remote call and one completion."""
        engine, remote, states = make_engine(remote=FakeRemoteSource({1: posts(1, 20)}))

        async def scenario() -> None:
            remote.gate = asyncio.Event()
            first = engine.refresh()
            second = engine.refresh()
            assert second is None
            assert engine.is_fetching
            assert engine.load_more() is None

            await asyncio.sleep(0)
            remote.gate.set()
            await drive(first)

        asyncio.run(scenario())

        assert remote.calls == [(1, 20)]
        assert [s.status for s in states] == [SyncStatus.REFRESH_IN_PROGRESS, SyncStatus.IDLE]
        assert not engine.is_fetching

    def test_refresh_failure_keeps_records_and_releases_guard(self) -> None:
        engine, remote, states = make_engine(store=InMemoryRecordStore(records(1, 5)))
        remote.error = TransportError("connection reset")

        asyncio.run(run_fetch(engine.refresh))

        assert engine.state.status is SyncStatus.FAILED
        assert engine.state.reason == "Transport error: connection reset"
        assert isinstance(engine.state.error, TransportError)
        assert [r.id for r in engine.current_records] == [1, 2, 3, 4, 5]
        assert not engine.is_fetching

        remote.error = None
        remote.pages = {1: posts(1, 8)}
        asyncio.run(run_fetch(engine.refresh))

        assert engine.state == SyncState.idle()
        assert len(engine.current_records) == 8

    @pytest.mark.parametrize(
        "error",
        [DecodeError("bad payload"), TransportError("timed out")],
    )
    def test_every_fetch_failure_surfaces_as_failed(self, error: FetchError) -> None:
        engine, remote, _ = make_engine()
        remote.error = error

        asyncio.run(run_fetch(engine.refresh))

        assert engine.state.status is SyncStatus.FAILED
        assert engine.state.reason == error.reason

    def test_store_conflict_during_merge_surfaces_as_failed(self) -> None:
        store = BlindStore(records(1, 1))
        engine, remote, _ = make_engine(store=store, remote=FakeRemoteSource({1: posts(1, 3)}))

        asyncio.run(run_fetch(engine.refresh))

        assert engine.state.status is SyncStatus.FAILED
        assert engine.state.reason.startswith("Local store error")
        assert [r.id for r in engine.current_records] == [1]
        assert not engine.is_fetching

    def test_partial_merge_failure_publishes_what_was_stored(self) -> None:
        store = RejectingStore(rejected_id=3)
        engine, _, _ = make_engine(store=store, remote=FakeRemoteSource({1: posts(1, 5)}))

        asyncio.run(run_fetch(engine.refresh))

        assert engine.state.status is SyncStatus.FAILED
        assert isinstance(engine.state.error, DuplicateRecordError)
        assert [r.id for r in engine.current_records] == [1, 2]
        assert list(engine.current_records) == store.all_ordered_by_id_ascending()
        assert engine.next_page == next_page_number(2, 20)

    @pytest.mark.parametrize("error", [RuntimeError("boom"), KeyError("userId"), RecursionError()])
    def test_unexpected_error_fails_and_releases_guard(self, error: Exception) -> None:
        engine, remote, states = make_engine(store=InMemoryRecordStore(records(1, 3)))
        remote.error = error

        asyncio.run(run_fetch(engine.refresh))

        assert engine.state.status is SyncStatus.FAILED
        assert engine.state.reason.startswith("Unexpected error")
        assert engine.state.error is error
        assert [s.status for s in states] == [SyncStatus.REFRESH_IN_PROGRESS, SyncStatus.FAILED]
        assert not engine.is_fetching
        assert [r.id for r in engine.current_records] == [1, 2, 3]

        remote.error = None
        remote.pages = {1: posts(1, 5)}
        asyncio.run(run_fetch(engine.refresh))

        assert engine.state == SyncState.idle()
        assert len(engine.current_records) == 5

    def test_refresh_requires_running_loop(self) -> None:
        engine, remote, states = make_engine()

        with pytest.raises(RuntimeError):
            engine.refresh()

        assert not engine.is_fetching
        assert states == []
        assert remote.calls == []

    def test_listener_can_load_more_as_soon_as_idle_is_published(self) -> None:
        remote = FakeRemoteSource({1: posts(1, 20), 2: posts(21, 40)})
        engine, _, _ = make_engine(remote=remote)
        follow_ups: list[asyncio.Task] = []

        def on_state(state: SyncState) -> None:
            if state.status is SyncStatus.IDLE and not follow_ups:
                task = engine.load_more()
                assert task is not None
                follow_ups.append(task)

        engine.on_state_change = on_state

        async def scenario() -> None:
            await drive(engine.refresh())
            await follow_ups[0]

        asyncio.run(scenario())

        assert remote.calls == [(1, 20), (2, 20)]
        assert len(engine.current_records) == 40


class TestLoadMore:
    def test_cursor_uses_local_record_count(self) -> None:
        """45 stored records at page size 20 request page 3."""
        engine, remote, _ = make_engine(
            store=InMemoryRecordStore(records(1, 45)),
            remote=FakeRemoteSource({3: posts(41, 60)}),
        )
        assert engine.next_page == 3

        asyncio.run(run_fetch(engine.load_more))

        assert remote.calls == [(3, 20)]
        assert len(engine.current_records) == 60

    def test_short_page_is_not_end_of_data(self) -> None:
        """Ids 1-20 stored, page 2 returns ids 21-35."""
        engine, remote, states = make_engine(
            store=InMemoryRecordStore(records(1, 20)),
            remote=FakeRemoteSource({2: posts(21, 35)}),
        )

        asyncio.run(run_fetch(engine.load_more))

        assert remote.calls == [(2, 20)]
        assert engine.state == SyncState.idle()
        assert len(engine.current_records) == 35
        assert not engine.is_exhausted
        assert [s.status for s in states] == [SyncStatus.LOAD_MORE_IN_PROGRESS, SyncStatus.IDLE]

    def test_short_page_is_requested_again_and_deduplicated(self) -> None:
        engine, remote, _ = make_engine(
            store=InMemoryRecordStore(records(1, 35)),
            remote=FakeRemoteSource({2: posts(21, 40)}),
        )

        asyncio.run(run_fetch(engine.load_more))

        assert remote.calls == [(2, 20)]
        assert [r.id for r in engine.current_records] == list(range(1, 41))
        assert engine.record(21).title == "stored 21"

    def test_empty_page_is_terminal(self) -> None:
        engine, remote, states = make_engine(store=InMemoryRecordStore(records(1, 20)))

        asyncio.run(run_fetch(engine.load_more))

        assert engine.state.status is SyncStatus.END_OF_DATA
        assert engine.is_exhausted
        assert remote.calls == [(2, 20)]

        async def again() -> None:
            assert engine.load_more() is None
            assert engine.load_more() is None

        asyncio.run(again())

        assert remote.calls == [(2, 20)]
        assert [s.status for s in states[-3:]] == [SyncStatus.END_OF_DATA] * 3

    def test_refresh_leaves_end_of_data_but_feed_stays_exhausted(self) -> None:
        engine, remote, states = make_engine(store=InMemoryRecordStore(records(1, 20)))
        asyncio.run(run_fetch(engine.load_more))

        remote.pages = {1: posts(1, 20)}
        asyncio.run(run_fetch(engine.refresh))
        assert engine.state == SyncState.idle()

        async def more() -> None:
            assert engine.load_more() is None

        asyncio.run(more())

        assert engine.state.status is SyncStatus.END_OF_DATA
        assert remote.calls == [(2, 20), (1, 20)]

    def test_load_more_after_failure_retries_same_page(self) -> None:
        engine, remote, _ = make_engine(store=InMemoryRecordStore(records(1, 20)))
        remote.error = TransportError("offline")
        asyncio.run(run_fetch(engine.load_more))
        assert engine.state.status is SyncStatus.FAILED

        remote.error = None
        remote.pages = {2: posts(21, 40)}
        asyncio.run(run_fetch(engine.load_more))

        assert remote.calls == [(2, 20), (2, 20)]
        assert engine.state == SyncState.idle()

    def test_load_more_if_needed_triggers_at_prefetch_distance(self) -> None:
        engine, remote, _ = make_engine(
            store=InMemoryRecordStore(records(1, 20)),
            remote=FakeRemoteSource({2: posts(21, 40)}),
        )

        async def scroll() -> None:
            assert engine.load_more_if_needed(10) is None
            await drive(engine.load_more_if_needed(15))

        asyncio.run(scroll())

        assert remote.calls == [(2, 20)]


class TestToggleLike:
    def test_toggle_twice_restores_flag(self) -> None:
        store = InMemoryRecordStore(records(1, 10))
        engine, _, states = make_engine(store=store)

        updated = engine.toggle_like(7)
        assert updated.liked
        assert engine.record(7).liked
        assert store.all_ordered_by_id_ascending()[6].liked

        engine.toggle_like(7)
        assert not engine.record(7).liked
        assert not store.all_ordered_by_id_ascending()[6].liked
        assert states == []

    def test_toggle_unknown_record_raises(self) -> None:
        engine, _, _ = make_engine(store=InMemoryRecordStore(records(1, 3)))

        with pytest.raises(RecordNotFoundError):
            engine.toggle_like(99)

    def test_toggle_during_fetch_survives_merge(self) -> None:
        store = InMemoryRecordStore(records(1, 10))
        remote = FakeRemoteSource({1: posts(1, 20)})
        engine, _, _ = make_engine(store=store, remote=remote)

        async def scenario() -> None:
            remote.gate = asyncio.Event()
            task = engine.refresh()
            await asyncio.sleep(0)
            engine.toggle_like(7)
            remote.gate.set()
            await drive(task)

        asyncio.run(scenario())

        assert len(engine.current_records) == 20
        assert engine.record(7).liked
        assert engine.record(7).title == "stored 7"


class TestCursor:
    def test_cached_records_are_loaded_in_order(self) -> None:
        store = InMemoryRecordStore(records(5, 9) + records(1, 4))
        engine, _, _ = make_engine(store=store)

        assert [r.id for r in engine.current_records] == list(range(1, 10))
        assert engine.state == SyncState.idle()

    @pytest.mark.parametrize(
        ("count", "current", "following"),
        [(0, 1, 1), (20, 1, 2), (35, 2, 2), (40, 2, 3), (45, 3, 3)],
    )
    def test_page_numbers(self, count: int, current: int, following: int) -> None:
        assert current_page_number(count, 20) == current
        assert next_page_number(count, 20) == following

    @given(
        count=st.integers(min_value=0, max_value=10_000),
        page_size=st.integers(min_value=1, max_value=100),
    )
    @settings(max_examples=200)
    def test_next_page_starts_inside_unfilled_page(self, count: int, page_size: int) -> None:
        """The requested page always covers the first record not yet materialized."""
        page = next_page_number(count, page_size)

        assert page >= 1
        assert (page - 1) * page_size <= count < page * page_size

    @given(st.lists(st.integers(min_value=1, max_value=500), unique=True, max_size=40))
    @settings(max_examples=50, deadline=None)
    def test_repeated_refresh_is_idempotent(self, ids: list[int]) -> None:
        page = [RemotePost(id=i, owner_id=1, title=None, body="b") for i in ids]
        engine, _, _ = make_engine(remote=FakeRemoteSource({1: page}))

        asyncio.run(run_fetch(engine.refresh))
        first = engine.current_records
        asyncio.run(run_fetch(engine.refresh))

        assert engine.current_records == first
        assert [r.id for r in first] == sorted(ids)
