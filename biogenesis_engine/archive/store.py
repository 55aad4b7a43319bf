"""SQLite-backed creature archive."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from ..config import DEFAULT_ARCHIVE_PATH
from ..errors import PersistenceError
from ..schema import CreatureRecord
from ..utils import ensure_dir, now_epoch_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveEntry:
    id: str
    timestamp: int
    record: CreatureRecord
    image_url: str | None


def entry_id_for(record: CreatureRecord, timestamp: int) -> str:
    entity_id = (record.engine_data.entity_id or "").strip()
    return entity_id or str(timestamp)


@dataclass
class ArchiveStore:
    """Archive of generated creatures, keyed by entity id.

    Saving an id that already exists replaces the stored entry (latest write wins).
    Reads and writes never raise to the caller; failures are logged.
    """

    path: Path = DEFAULT_ARCHIVE_PATH

    def connect(self) -> sqlite3.Connection:
        ensure_dir(self.path.parent)
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self.connect()
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"Cannot open archive at {self.path}: {exc}") from exc
        try:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS creatures (
                        id TEXT PRIMARY KEY,
                        timestamp INTEGER NOT NULL,
                        record_json TEXT NOT NULL,
                        image_url TEXT
                    )
                    """
                )
                yield conn
        except sqlite3.Error as exc:
            raise PersistenceError(f"Archive operation failed: {exc}") from exc
        finally:
            conn.close()

    def save(
        self,
        record: CreatureRecord,
        image_url: str | None,
        *,
        timestamp: int | None = None,
    ) -> ArchiveEntry | None:
        stamp = now_epoch_ms() if timestamp is None else int(timestamp)
        entry = ArchiveEntry(
            id=entry_id_for(record, stamp),
            timestamp=stamp,
            record=record,
            image_url=image_url,
        )
        try:
            with self._session() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO creatures (id, timestamp, record_json, image_url)
                    VALUES (?, ?, ?, ?)
                    """,
                    (entry.id, entry.timestamp, record.to_json(), image_url),
                )
        except PersistenceError as exc:
            logger.error("Failed to save creature %s: %s", entry.id, exc)
            return None
        logger.info("Archived creature %s", entry.id)
        return entry

    def list_all(self) -> list[ArchiveEntry]:
        try:
            with self._session() as conn:
                rows = conn.execute(
                    "SELECT id, timestamp, record_json, image_url FROM creatures "
                    "ORDER BY timestamp DESC, rowid DESC"
                ).fetchall()
        except PersistenceError as exc:
            logger.error("Failed to load archive: %s", exc)
            return []
        entries: list[ArchiveEntry] = []
        for row in rows:
            entry = _row_to_entry(row)
            if entry is not None:
                entries.append(entry)
        return entries

    def get(self, entry_id: str) -> ArchiveEntry | None:
        try:
            with self._session() as conn:
                row = conn.execute(
                    "SELECT id, timestamp, record_json, image_url FROM creatures WHERE id = ?",
                    (entry_id,),
                ).fetchone()
        except PersistenceError as exc:
            logger.error("Failed to load creature %s: %s", entry_id, exc)
            return None
        return _row_to_entry(row) if row is not None else None

    def count(self) -> int:
        try:
            with self._session() as conn:
                row = conn.execute("SELECT COUNT(*) FROM creatures").fetchone()
        except PersistenceError as exc:
            logger.error("Failed to count archive entries: %s", exc)
            return 0
        return int(row[0])

    def delete_one(self, entry_id: str) -> None:
        try:
            with self._session() as conn:
                conn.execute("DELETE FROM creatures WHERE id = ?", (entry_id,))
        except PersistenceError as exc:
            logger.error("Failed to delete creature %s: %s", entry_id, exc)

    def clear_all(self) -> None:
        try:
            with self._session() as conn:
                conn.execute("DELETE FROM creatures")
        except PersistenceError as exc:
            logger.error("Failed to clear archive: %s", exc)


def _row_to_entry(row: sqlite3.Row) -> ArchiveEntry | None:
    try:
        record = CreatureRecord.model_validate_json(row["record_json"])
    except ValidationError as exc:
        logger.warning("Skipping unreadable archive entry %s: %s", row["id"], exc.errors()[0]["msg"])
        return None
    return ArchiveEntry(
        id=row["id"],
        timestamp=int(row["timestamp"]),
        record=record,
        image_url=row["image_url"],
    )
