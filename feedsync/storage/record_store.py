"""Record store interface and in-memory implementation."""

from abc import ABC, abstractmethod
from typing import Iterable

import structlog

from feedsync.models.record import Record
from feedsync.storage.errors import DuplicateRecordError, RecordNotFoundError

log = structlog.stdlib.get_logger()


class RecordStore(ABC):
    """Abstract interface for durable keyed storage of feed records.

    This interface defines the contract that all record store implementations
    must follow, so the sync engine can run against SQLite or an in-memory
    substitute.
    """

    @abstractmethod
    def existing_ids(self, candidate_ids: Iterable[int]) -> set[int]:
        """Return the subset of ``candidate_ids`` already stored.

        Args:
            candidate_ids: Record ids to check in one bulk query

        Returns:
            Ids that are present in the store
        """
        pass

    @abstractmethod
    def insert(self, record: Record) -> None:
        """Insert a new record.

        Args:
            record: Record to store

        Raises:
            DuplicateRecordError: If a record with the same id exists
        """
        pass

    @abstractmethod
    def all_ordered_by_id_ascending(self) -> list[Record]:
        """Return every stored record in ascending id order."""
        pass

    @abstractmethod
    def update_liked(self, record_id: int, liked: bool) -> None:
        """Set the like flag of a stored record.

        Args:
            record_id: Id of the record to update
            liked: New like flag

        Raises:
            RecordNotFoundError: If no record has this id
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored records."""
        pass


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed record store for tests and ephemeral sessions."""

    def __init__(self, records: Iterable[Record] = ()):
        self._records: dict[int, Record] = {}
        for record in records:
            self.insert(record)

    def existing_ids(self, candidate_ids: Iterable[int]) -> set[int]:
        return {record_id for record_id in candidate_ids if record_id in self._records}

    def insert(self, record: Record) -> None:
        if record.id in self._records:
            raise DuplicateRecordError(record.id)
        self._records[record.id] = record

    def all_ordered_by_id_ascending(self) -> list[Record]:
        return [self._records[record_id] for record_id in sorted(self._records)]

    def update_liked(self, record_id: int, liked: bool) -> None:
        try:
            record = self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(record_id) from None
        self._records[record_id] = record.with_liked(liked)
        log.debug("record_like_updated", record_id=record_id, liked=liked)

    def count(self) -> int:
        return len(self._records)
