"""Domain models for the users service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    # PostgREST may emit a trailing "Z" for UTC timestamps.
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class User:
    """Represents a row of the ``users`` table."""

    id: int
    name: str
    email: str
    created_at: datetime

    @staticmethod
    def from_row(row: Mapping[str, Any]) -> "User":
        """Create a :class:`User` from a record store row."""

        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            created_at=_parse_timestamp(row["created_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
        }


__all__ = ["User"]
