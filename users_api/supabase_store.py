"""Record store backed by a hosted Supabase (PostgREST) table."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from .store import NoRowsError, RecordStore, RecordStoreError, Row

logger = logging.getLogger("users_api.supabase")

# PostgREST error code for "JSON object requested, multiple (or no) rows returned".
NO_ROWS_CODE = "PGRST116"

T = TypeVar("T")


class SupabaseRecordStore(RecordStore):
    """Translate record store calls into Supabase table queries."""

    def __init__(self, client: Client, *, table: str = "users") -> None:
        self._client = client
        self._table = table

    @classmethod
    def from_credentials(cls, url: str, key: str, *, table: str = "users") -> "SupabaseRecordStore":
        if not url or not key:
            raise ValueError("Missing Supabase credentials")
        client = create_client(url, key)
        logger.info("Supabase client initialised for %s", url)
        return cls(client, table=table)

    def _query(self):
        return self._client.table(self._table)

    def _execute(self, action: str, call: Callable[[], T]) -> T:
        try:
            return call()
        except APIError as exc:
            if exc.code == NO_ROWS_CODE:
                raise NoRowsError(exc.message or "No rows returned") from exc
            logger.error("Supabase %s on %s failed: %s", action, self._table, exc.message)
            raise RecordStoreError(exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.error("Supabase %s on %s could not reach the server: %s", action, self._table, exc)
            raise RecordStoreError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Record store contract
    # ------------------------------------------------------------------
    def insert(self, fields: Mapping[str, Any]) -> Row:
        response = self._execute("insert", lambda: self._query().insert(dict(fields)).execute())
        rows: List[Row] = list(response.data or [])
        if not rows:
            raise RecordStoreError("Insert did not return the created row")
        return rows[0]

    def select_all(self, order_by: str, *, descending: bool = True) -> List[Row]:
        response = self._execute(
            "select",
            lambda: self._query().select("*").order(order_by, desc=descending).execute(),
        )
        return list(response.data or [])

    def select_one(self, column: str, value: Any) -> Row:
        response = self._execute(
            "select",
            lambda: self._query().select("*").eq(column, value).single().execute(),
        )
        if not response.data:
            raise NoRowsError(f"No rows in {self._table} where {column} = {value!r}")
        return dict(response.data)

    def update(self, record_id: int, fields: Mapping[str, Any]) -> Row:
        if not fields:
            return self.select_one("id", record_id)

        response = self._execute(
            "update",
            lambda: self._query().update(dict(fields)).eq("id", record_id).execute(),
        )
        rows: List[Row] = list(response.data or [])
        if not rows:
            raise NoRowsError(f"No rows in {self._table} where id = {record_id!r}")
        return rows[0]

    def delete(self, record_id: int) -> None:
        self._execute("delete", lambda: self._query().delete().eq("id", record_id).execute())


__all__ = ["NO_ROWS_CODE", "SupabaseRecordStore"]
