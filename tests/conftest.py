from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from users_api.store import NoRowsError, RecordStore, RecordStoreError, Row  # noqa: E402


class InMemoryRecordStore(RecordStore):
    """Record store double that keeps rows in a dict and records every call."""

    def __init__(self) -> None:
        self.rows: Dict[int, Row] = {}
        self.calls: List[str] = []
        self.fail_with: Exception | None = None
        self._next_id = 1
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def insert(self, fields: Mapping[str, Any]) -> Row:
        self._record("insert")
        self._clock += timedelta(seconds=1)
        row = {"id": self._next_id, **fields, "created_at": self._clock.isoformat()}
        self.rows[self._next_id] = row
        self._next_id += 1
        return dict(row)

    def select_all(self, order_by: str, *, descending: bool = True) -> List[Row]:
        self._record("select_all")
        return sorted((dict(row) for row in self.rows.values()), key=lambda row: row[order_by], reverse=descending)

    def select_one(self, column: str, value: Any) -> Row:
        self._record("select_one")
        matches = [row for row in self.rows.values() if row[column] == value]
        if len(matches) != 1:
            raise NoRowsError(f"{len(matches)} rows where {column} = {value!r}")
        return dict(matches[0])

    def update(self, record_id: int, fields: Mapping[str, Any]) -> Row:
        self._record("update")
        if record_id not in self.rows:
            raise NoRowsError(f"No row with id {record_id}")
        self.rows[record_id].update(fields)
        return dict(self.rows[record_id])

    def delete(self, record_id: int) -> None:
        self._record("delete")
        self.rows.pop(record_id, None)


@pytest.fixture()
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def broken_store() -> InMemoryRecordStore:
    store = InMemoryRecordStore()
    store.fail_with = RecordStoreError("connection reset by peer")
    return store
