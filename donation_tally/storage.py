"""SQLite-backed key/value storage shared by every open tab of the tally."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageEvent:
    """A change committed to the storage file by another connection.

    ``key`` is ``None`` when the other side cleared every item.
    """

    key: str | None
    old_value: str | None
    new_value: str | None


class OriginStorage:
    """One tab's handle on the shared storage file.

    Every instance keeps its own connection. Writes made through this handle
    never show up in its own :meth:`poll_changes`; writes committed by any
    other handle on the same file do.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._connection = self._connect()
        self._init_db()
        self._data_version = self._read_data_version()
        self._snapshot = self._read_all()

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(self.db_path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        return connection

    def _init_db(self) -> None:
        with self._connection:
            self._connection.execute(
                """
                CREATE TABLE IF NOT EXISTS storage_items (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def _read_data_version(self) -> int:
        row = self._connection.execute("PRAGMA data_version").fetchone()
        return int(row[0])

    def _read_all(self) -> dict[str, str]:
        rows = self._connection.execute("SELECT key, value FROM storage_items").fetchall()
        return {str(row["key"]): str(row["value"]) for row in rows}

    def get_item(self, key: str) -> str | None:
        row = self._connection.execute(
            "SELECT value FROM storage_items WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set_item(self, key: str, value: str) -> None:
        with self._connection:
            self._connection.execute(
                """
                INSERT INTO storage_items (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
        self._snapshot[key] = value
        logger.debug("Wrote storage item %r (%d chars)", key, len(value))

    def remove_item(self, key: str) -> None:
        with self._connection:
            self._connection.execute("DELETE FROM storage_items WHERE key = ?", (key,))
        self._snapshot.pop(key, None)

    def clear(self) -> None:
        with self._connection:
            self._connection.execute("DELETE FROM storage_items")
        self._snapshot = {}

    def keys(self) -> list[str]:
        rows = self._connection.execute(
            "SELECT key FROM storage_items ORDER BY key"
        ).fetchall()
        return [str(row["key"]) for row in rows]

    def poll_changes(self) -> list[StorageEvent]:
        """Return the changes other connections committed since the last poll."""
        data_version = self._read_data_version()
        if data_version == self._data_version:
            return []
        self._data_version = data_version

        previous = self._snapshot
        current = self._read_all()
        self._snapshot = current

        if previous and not current:
            return [StorageEvent(key=None, old_value=None, new_value=None)]

        events: list[StorageEvent] = []
        for key in sorted(set(previous) | set(current)):
            old_value = previous.get(key)
            new_value = current.get(key)
            if old_value != new_value:
                events.append(StorageEvent(key=key, old_value=old_value, new_value=new_value))
        return events

    def close(self) -> None:
        self._connection.close()
