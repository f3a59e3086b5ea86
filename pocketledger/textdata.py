"""Validation helpers for user-supplied text."""

from __future__ import annotations

from typing import Optional


class DataIsEmptyError(ValueError):
    """Raised when a required text value is empty after trimming."""

    def __init__(self, message: str = "数据不可为空") -> None:
        super().__init__(message)


def not_empty_string(value: Optional[str]) -> str:
    """Return ``value`` trimmed; raise DataIsEmptyError if missing or blank."""
    if value is None:
        raise DataIsEmptyError()
    trimmed = value.strip()
    if not trimmed:
        raise DataIsEmptyError()
    return trimmed


def copy_not_empty_string_optional(value: Optional[str]) -> Optional[str]:
    """Return ``value`` trimmed, or None when not given; blank values raise."""
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        raise DataIsEmptyError()
    return trimmed