"""Input validation for user records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Mapping

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

NAME_REQUIRED = "Name is required and must be a non-empty string"
EMAIL_REQUIRED = "Email is required and must be a string"
EMAIL_INVALID = "Email must be a valid email address"


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def normalize_email(value: str) -> str:
    """Trim surrounding whitespace and lower-case the address."""

    return value.strip().lower()


def validate_user(candidate: Mapping[str, object]) -> ValidationResult:
    """Check the ``name`` and ``email`` fields of ``candidate``.

    Every rule is evaluated, so a record with both fields wrong reports two
    errors.
    """

    errors: List[str] = []

    name = candidate.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append(NAME_REQUIRED)

    email = candidate.get("email")
    if not isinstance(email, str) or not email:
        errors.append(EMAIL_REQUIRED)
    elif not EMAIL_PATTERN.fullmatch(email):
        errors.append(EMAIL_INVALID)

    return ValidationResult(is_valid=not errors, errors=errors)


__all__ = [
    "EMAIL_PATTERN",
    "ValidationResult",
    "normalize_email",
    "validate_user",
]
