"""Request handlers for the users resource.

Each handler validates its input, checks existence and email uniqueness
against the repository and then performs a single write. Failures are raised
as the typed errors from :mod:`users_api.errors`; turning them into HTTP
responses is left to the service layer.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Tuple

from .errors import BadRequestError, ConflictError, NotFoundError, ValidationError
from .models import User
from .repository import UserRepository
from .validation import normalize_email, validate_user

logger = logging.getLogger("users_api.handlers")

MAX_USER_ID = 2 ** 63 - 1
MIN_USER_ID = -(2 ** 63)

_USER_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


def _supplied(payload: Mapping[str, Any], key: str) -> bool:
    return payload.get(key) is not None


def parse_user_id(raw: object) -> int:
    """Parse a path parameter into a user id or raise :class:`BadRequestError`.

    Only plain decimal integers within the signed 64-bit range are accepted.
    """

    text = str(raw).strip() if raw is not None else ""
    if not _USER_ID_PATTERN.fullmatch(text):
        raise BadRequestError("Invalid user ID", "User ID must be a valid number")
    user_id = int(text)
    if not MIN_USER_ID <= user_id <= MAX_USER_ID:
        raise BadRequestError("Invalid user ID", "User ID must be a valid number")
    return user_id


async def _require_user(repository: UserRepository, user_id: int) -> User:
    user = await repository.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found", f"No user found with ID {user_id}")
    return user


async def create_user(repository: UserRepository, payload: Mapping[str, Any]) -> User:
    validation = validate_user(payload)
    if not validation.is_valid:
        raise ValidationError("Validation failed", validation.errors)

    name = str(payload["name"]).strip()
    email = normalize_email(str(payload["email"]))

    # Not atomic with the insert below: two concurrent creates may both pass.
    if await repository.find_by_email(email) is not None:
        logger.info("Rejected duplicate registration for %s", email)
        raise ConflictError(
            "User with this email already exists. Please use a different email address.",
            "This email address is already taken",
        )

    user = await repository.create(name, email)
    logger.info("Created user %s", user.id)
    return user


async def list_users(repository: UserRepository) -> Tuple[List[User], int]:
    users = await repository.find_all()
    return users, len(users)


async def get_user(repository: UserRepository, raw_id: object) -> User:
    user_id = parse_user_id(raw_id)
    return await _require_user(repository, user_id)


async def update_user(
    repository: UserRepository,
    raw_id: object,
    payload: Mapping[str, Any],
) -> User:
    user_id = parse_user_id(raw_id)
    existing = await _require_user(repository, user_id)

    name_supplied = _supplied(payload, "name")
    email_supplied = _supplied(payload, "email")

    if name_supplied or email_supplied:
        merged = {
            "name": payload["name"] if name_supplied else existing.name,
            "email": payload["email"] if email_supplied else existing.email,
        }
        validation = validate_user(merged)
        if not validation.is_valid:
            raise ValidationError("Validation failed", validation.errors)

    updates: Dict[str, str] = {}
    if name_supplied:
        updates["name"] = str(payload["name"]).strip()
    if email_supplied:
        email = normalize_email(str(payload["email"]))
        if email != existing.email:
            other = await repository.find_by_email(email)
            if other is not None and other.id != existing.id:
                logger.info("Rejected email change for user %s: %s is taken", user_id, email)
                raise ConflictError("Email already exists", "Another user with this email already exists")
        updates["email"] = email

    user = await repository.update(user_id, updates)
    logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(updates)) or "no changes")
    return user


async def delete_user(repository: UserRepository, raw_id: object) -> int:
    user_id = parse_user_id(raw_id)
    await _require_user(repository, user_id)
    await repository.delete(user_id)
    logger.info("Deleted user %s", user_id)
    return user_id


__all__ = [
    "create_user",
    "delete_user",
    "get_user",
    "list_users",
    "parse_user_id",
    "update_user",
]
