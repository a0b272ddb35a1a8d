"""Utility functions for the hub simulator."""

from __future__ import annotations

import os
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any

from .constants import MAX_USERNAME_LENGTH


def iso_timestamp() -> str:
    """Get the current UTC instant as an ISO-8601 string.

    Returns:
        Timestamp such as ``2024-05-01T12:00:00.123456+00:00``
    """
    return datetime.now(timezone.utc).isoformat()


def get_timestamp() -> str:
    """Get current timestamp formatted for display (HH:MM:SS)."""
    return datetime.now().strftime("%H:%M:%S")


def expand_path(p: str) -> str:
    """Expand ~ and environment variables in path."""
    return os.path.expanduser(os.path.expandvars(p))


def normalize_username(name: Any) -> str | None:
    """Normalize a username by stripping surrounding whitespace.

    Args:
        name: The username to normalize.

    Returns:
        Normalized username, or None if invalid.

    Validation rules:
    - Must be a string
    - 1-64 characters after stripping
    - No control characters
    """
    if not isinstance(name, str):
        return None

    n = name.strip()

    if not n or len(n) > MAX_USERNAME_LENGTH:
        return None

    if any(ord(c) < 32 for c in n):
        return None

    return n


def has_control_characters(text: str) -> bool:
    """Check message text for control characters other than newline and tab."""
    return any(ord(c) < 32 and c not in "\n\t" for c in text)


def describe_population(count: int) -> str:
    """Phrase a user count, e.g. ``There is 1 user online.``"""
    if count == 1:
        return "There is 1 user online."
    return f"There are {count} users online."


def resolved(value: Any) -> Future:
    """Return a future that already holds ``value``."""
    future: Future = Future()
    future.set_result(value)
    return future


def resolve(future: Future, value: Any) -> None:
    """Set a future's result unless it is already done or was cancelled."""
    if not future.done():
        future.set_result(value)
