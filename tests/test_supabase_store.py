"""Tests for the Supabase record store using a fake client."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, List, Optional, Tuple

import httpx
import pytest
from postgrest.exceptions import APIError

from users_api.store import NoRowsError, RecordStoreError
from users_api.supabase_store import NO_ROWS_CODE, SupabaseRecordStore


class FakeQuery:
    def __init__(self, client: "FakeClient", table: str) -> None:
        self._client = client
        self.calls: List[Tuple[str, Tuple[Any, ...], dict]] = [("table", (table,), {})]

    def __getattr__(self, name: str):
        def method(*args: Any, **kwargs: Any) -> "FakeQuery":
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self) -> SimpleNamespace:
        self._client.queries.append(self.calls)
        if self._client.error is not None:
            raise self._client.error
        return SimpleNamespace(data=self._client.data)


class FakeClient:
    def __init__(self, data: Any = None, error: Optional[Exception] = None) -> None:
        self.data = data
        self.error = error
        self.queries: List[List[Tuple[str, Tuple[Any, ...], dict]]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


ROW = {"id": 1, "name": "Ann", "email": "ann@x.com", "created_at": "2024-05-01T12:00:00+00:00"}


def _method_names(client: FakeClient) -> List[str]:
    return [name for name, _, _ in client.queries[-1]]


def test_insert_returns_created_row() -> None:
    client = FakeClient(data=[ROW])
    store = SupabaseRecordStore(client)  # type: ignore[arg-type]

    row = store.insert({"name": "Ann", "email": "ann@x.com"})

    assert row == ROW
    assert _method_names(client) == ["table", "insert"]
    assert client.queries[-1][1][1] == ({"name": "Ann", "email": "ann@x.com"},)


def test_select_all_orders_descending() -> None:
    client = FakeClient(data=[ROW])
    store = SupabaseRecordStore(client)  # type: ignore[arg-type]

    assert store.select_all("created_at") == [ROW]
    order_call = client.queries[-1][-1]
    assert order_call == ("order", ("created_at",), {"desc": True})


def test_select_one_uses_single_row_fetch() -> None:
    client = FakeClient(data=ROW)
    store = SupabaseRecordStore(client)  # type: ignore[arg-type]

    assert store.select_one("email", "ann@x.com") == ROW
    assert _method_names(client) == ["table", "select", "eq", "single"]


def test_no_rows_code_becomes_no_rows_error() -> None:
    error = APIError({"code": NO_ROWS_CODE, "message": "JSON object requested, multiple (or no) rows returned"})
    store = SupabaseRecordStore(FakeClient(error=error))  # type: ignore[arg-type]

    with pytest.raises(NoRowsError):
        store.select_one("id", 999)


def test_other_api_errors_become_store_errors() -> None:
    error = APIError({"code": "42P01", "message": 'relation "users" does not exist'})
    store = SupabaseRecordStore(FakeClient(error=error))  # type: ignore[arg-type]

    with pytest.raises(RecordStoreError, match="does not exist"):
        store.select_all("created_at")


def test_transport_errors_become_store_errors() -> None:
    store = SupabaseRecordStore(FakeClient(error=httpx.ConnectError("connection refused")))  # type: ignore[arg-type]

    with pytest.raises(RecordStoreError, match="connection refused"):
        store.delete(1)


def test_update_with_no_matching_rows() -> None:
    store = SupabaseRecordStore(FakeClient(data=[]))  # type: ignore[arg-type]

    with pytest.raises(NoRowsError):
        store.update(5, {"name": "Ghost"})


def test_update_without_fields_reads_current_row() -> None:
    client = FakeClient(data=ROW)
    store = SupabaseRecordStore(client)  # type: ignore[arg-type]

    assert store.update(1, {}) == ROW
    assert "update" not in _method_names(client)


def test_from_credentials_requires_values() -> None:
    with pytest.raises(ValueError):
        SupabaseRecordStore.from_credentials("", "")
