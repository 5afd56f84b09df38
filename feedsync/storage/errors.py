"""Failure taxonomy for local record stores."""


class RecordStoreError(Exception):
    """Base class for record store failures."""


class DuplicateRecordError(RecordStoreError):
    """Raised when inserting a record whose id is already stored."""

    def __init__(self, record_id: int):
        super().__init__(f"Record {record_id} already exists")
        self.record_id = record_id


class RecordNotFoundError(RecordStoreError):
    """Raised when a record id is not present."""

    def __init__(self, record_id: int):
        super().__init__(f"Record {record_id} not found")
        self.record_id = record_id
