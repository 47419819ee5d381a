"""Record store contract shared by the hosted and local database backends."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any, Dict, List, Mapping

if TYPE_CHECKING:  # pragma: no cover
    from .config import Settings

Row = Dict[str, Any]


class RecordStoreError(RuntimeError):
    """Raised when the underlying database or its transport fails."""


class NoRowsError(LookupError):
    """Raised when a single-row operation matched no rows."""


class RecordStore(abc.ABC):
    """Create/read/update/delete access to one table keyed by an integer ``id``."""

    @abc.abstractmethod
    def insert(self, fields: Mapping[str, Any]) -> Row:
        """Insert a row and return it with the store-assigned columns."""

    @abc.abstractmethod
    def select_all(self, order_by: str, *, descending: bool = True) -> List[Row]:
        """Return every row ordered by ``order_by``."""

    @abc.abstractmethod
    def select_one(self, column: str, value: Any) -> Row:
        """Return the single row where ``column`` equals ``value``.

        Raises :class:`NoRowsError` when nothing matches.
        """

    @abc.abstractmethod
    def update(self, record_id: int, fields: Mapping[str, Any]) -> Row:
        """Apply ``fields`` to the row and return it, or raise :class:`NoRowsError`."""

    @abc.abstractmethod
    def delete(self, record_id: int) -> None:
        """Remove the row if it exists."""


def build_record_store(settings: "Settings") -> RecordStore:
    """Instantiate the backend selected by ``settings.store_backend``."""

    settings.validate_store()
    if settings.store_backend == "sqlite":
        from .database import SQLiteRecordStore

        store = SQLiteRecordStore(settings.database_path)
        store.initialize()
        return store

    from .supabase_store import SupabaseRecordStore

    return SupabaseRecordStore.from_credentials(settings.supabase_url or "", settings.supabase_key or "")


__all__ = ["NoRowsError", "RecordStore", "RecordStoreError", "Row", "build_record_store"]
