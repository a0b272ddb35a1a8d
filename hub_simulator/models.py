"""Value types shared by the hub simulator components."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """A user present in the session roster."""

    id: str
    name: str


@dataclass(frozen=True)
class Message:
    """A chat message recorded in session history."""

    id: int
    sender: str
    content: str
    timestamp: str


@dataclass(frozen=True)
class InvocationResult:
    """Result of an accepted hub method invocation."""

    success: bool = True
    user_id: str | None = None
    message_id: int | None = None
    users: tuple[str, ...] | None = None
