"""Durable record store using SQLite."""

import sqlite3
from pathlib import Path
from typing import Iterable

import structlog

from feedsync.models.record import Record
from feedsync.storage.errors import DuplicateRecordError, RecordNotFoundError
from feedsync.storage.record_store import RecordStore

log = structlog.stdlib.get_logger()

# Bound on bound parameters per statement, below SQLite's historical limit of 999.
_MAX_QUERY_PARAMS = 500


class SqliteRecordStore(RecordStore):
    """SQLite-backed record store.

    Records live in a single ``records`` table keyed by id, so uniqueness
    is enforced by the primary key as well as by the sync engine's merge.
    """

    def __init__(self, db_path: str | Path):
        """Open (and create if needed) the record database.

        Args:
            db_path: Path to the SQLite database file, or ``":memory:"``.
        """
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._db_path)
        self._conn.row_factory = sqlite3.Row
        self._create_tables()
        log.info("sqlite_record_store_initialized", db_path=self._db_path)

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS records (
                id INTEGER PRIMARY KEY,
                owner_id INTEGER NOT NULL,
                title TEXT,
                body TEXT NOT NULL,
                liked INTEGER NOT NULL DEFAULT 0
            );
        """)
        self._conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def existing_ids(self, candidate_ids: Iterable[int]) -> set[int]:
        ids = list(set(candidate_ids))
        found: set[int] = set()
        for start in range(0, len(ids), _MAX_QUERY_PARAMS):
            batch = ids[start : start + _MAX_QUERY_PARAMS]
            placeholders = ", ".join("?" for _ in batch)
            cursor = self._conn.execute(
                f"SELECT id FROM records WHERE id IN ({placeholders})",
                batch,
            )
            found.update(row["id"] for row in cursor.fetchall())
        return found

    def insert(self, record: Record) -> None:
        try:
            self._conn.execute(
                """
                INSERT INTO records (id, owner_id, title, body, liked)
                VALUES (?, ?, ?, ?, ?)
                """,
                (record.id, record.owner_id, record.title, record.body, int(record.liked)),
            )
        except sqlite3.IntegrityError as e:
            self._conn.rollback()
            raise DuplicateRecordError(record.id) from e
        self._conn.commit()

    def all_ordered_by_id_ascending(self) -> list[Record]:
        cursor = self._conn.execute("SELECT * FROM records ORDER BY id ASC")
        return [self._row_to_record(row) for row in cursor.fetchall()]

    def update_liked(self, record_id: int, liked: bool) -> None:
        cursor = self._conn.execute(
            "UPDATE records SET liked = ? WHERE id = ?",
            (int(liked), record_id),
        )
        if cursor.rowcount == 0:
            self._conn.rollback()
            raise RecordNotFoundError(record_id)
        self._conn.commit()
        log.debug("record_like_updated", record_id=record_id, liked=liked)

    def count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) AS total FROM records").fetchone()
        return row["total"]

    def _row_to_record(self, row: sqlite3.Row) -> Record:
        return Record(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            body=row["body"],
            liked=bool(row["liked"]),
        )
