"""Typed access to the ``users`` table on top of a :class:`RecordStore`."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Dict, List, Optional, TypeVar

import anyio

from .errors import StoreError
from .models import User
from .store import NoRowsError, RecordStore, RecordStoreError

logger = logging.getLogger("users_api.repository")

T = TypeVar("T")


class UserRepository:
    """Create, find, update and delete users.

    Store calls are blocking, so each one runs on a worker thread and the
    calling request handler is suspended rather than the event loop.
    Missing rows on single-row lookups come back as ``None``; every other
    store failure is raised as :class:`StoreError`.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    @property
    def store(self) -> RecordStore:
        return self._store

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await anyio.to_thread.run_sync(partial(func, *args, **kwargs))
        except (NoRowsError, StoreError):
            raise
        except RecordStoreError as exc:
            raise StoreError(f"Database error: {exc}") from exc
        except Exception as exc:
            logger.exception("Unexpected record store failure")
            raise StoreError(f"Database error: {exc}") from exc

    async def _find_one(self, column: str, value: Any) -> Optional[User]:
        try:
            row = await self._call(self._store.select_one, column, value)
        except NoRowsError:
            return None
        return User.from_row(row)

    async def create(self, name: str, email: str) -> User:
        row = await self._call(self._store.insert, {"name": name, "email": email})
        return User.from_row(row)

    async def find_all(self) -> List[User]:
        rows = await self._call(self._store.select_all, "created_at", descending=True)
        return [User.from_row(row) for row in rows]

    async def find_by_id(self, user_id: int) -> Optional[User]:
        return await self._find_one("id", user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self._find_one("email", email)

    async def update(self, user_id: int, fields: Dict[str, str]) -> User:
        try:
            row = await self._call(self._store.update, user_id, fields)
        except NoRowsError as exc:
            # Callers check existence first, so a vanished row is a store failure.
            raise StoreError(f"Database error: {exc}") from exc
        return User.from_row(row)

    async def delete(self, user_id: int) -> bool:
        await self._call(self._store.delete, user_id)
        return True


__all__ = ["UserRepository"]
