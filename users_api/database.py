"""SQLite-backed record store for local development and tests."""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Mapping

from .config import resolve_database_path
from .store import NoRowsError, RecordStore, RecordStoreError, Row

_COLUMNS = ("id", "name", "email", "created_at")
_WRITABLE_COLUMNS = ("name", "email")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _check_column(column: str, allowed: Iterable[str]) -> str:
    if column not in allowed:
        raise RecordStoreError(f"Unknown column '{column}'")
    return column


class SQLiteRecordStore(RecordStore):
    """Simple wrapper around SQLite exposing the record store contract."""

    def __init__(self, path: Path, *, table: str = "users") -> None:
        _ensure_directory(path)
        self._path = path
        self._table = table

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self._path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise RecordStoreError(str(exc)) from exc
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the table if it does not already exist."""

        # Email uniqueness is checked by the repository, not by a constraint.
        with self._connect() as conn:
            conn.executescript(
                f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_{self._table}_email ON {self._table}(email);
                CREATE INDEX IF NOT EXISTS idx_{self._table}_created_at ON {self._table}(created_at);
                """
            )

    # ------------------------------------------------------------------
    # Record store contract
    # ------------------------------------------------------------------
    def insert(self, fields: Mapping[str, Any]) -> Row:
        columns = [_check_column(key, _WRITABLE_COLUMNS) for key in fields]
        values: List[object] = [fields[key] for key in columns]
        columns.append("created_at")
        values.append(_serialize_datetime(_current_timestamp()))

        placeholders = ", ".join("?" for _ in columns)
        query = f"INSERT INTO {self._table} ({', '.join(columns)}) VALUES ({placeholders})"
        try:
            with self._connect() as conn:
                cursor = conn.execute(query, values)
                record_id = cursor.lastrowid
        except sqlite3.Error as exc:
            raise RecordStoreError(str(exc)) from exc

        return self.select_one("id", record_id)

    def select_all(self, order_by: str, *, descending: bool = True) -> List[Row]:
        column = _check_column(order_by, _COLUMNS)
        direction = "DESC" if descending else "ASC"
        query = f"SELECT * FROM {self._table} ORDER BY {column} {direction}, id {direction}"
        try:
            with self._connect() as conn:
                rows = conn.execute(query).fetchall()
        except sqlite3.Error as exc:
            raise RecordStoreError(str(exc)) from exc
        return [dict(row) for row in rows]

    def select_one(self, column: str, value: Any) -> Row:
        column = _check_column(column, _COLUMNS)
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    f"SELECT * FROM {self._table} WHERE {column} = ? LIMIT 2",
                    (value,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise RecordStoreError(str(exc)) from exc

        if not rows:
            raise NoRowsError(f"No rows in {self._table} where {column} = {value!r}")
        if len(rows) > 1:
            raise RecordStoreError(f"Multiple rows in {self._table} where {column} = {value!r}")
        return dict(rows[0])

    def update(self, record_id: int, fields: Mapping[str, Any]) -> Row:
        if not fields:
            return self.select_one("id", record_id)

        assignments = [f"{_check_column(key, _WRITABLE_COLUMNS)} = ?" for key in fields]
        values: List[object] = list(fields.values())
        values.append(record_id)
        query = f"UPDATE {self._table} SET {', '.join(assignments)} WHERE id = ?"

        try:
            with self._connect() as conn:
                cursor = conn.execute(query, values)
                matched = cursor.rowcount
        except sqlite3.Error as exc:
            raise RecordStoreError(str(exc)) from exc

        if matched == 0:
            raise NoRowsError(f"No rows in {self._table} where id = {record_id!r}")
        return self.select_one("id", record_id)

    def delete(self, record_id: int) -> None:
        try:
            with self._connect() as conn:
                conn.execute(f"DELETE FROM {self._table} WHERE id = ?", (record_id,))
        except sqlite3.Error as exc:
            raise RecordStoreError(str(exc)) from exc


__all__ = ["SQLiteRecordStore", "resolve_database_path"]
