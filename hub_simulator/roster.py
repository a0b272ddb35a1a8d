"""Roster of users present in a hub session."""

from __future__ import annotations

import logging
import threading
import uuid

from .errors import InvalidArgumentError
from .models import User
from .utils import normalize_username

logger = logging.getLogger(__name__)


class RosterStore:
    """Tracks present users in join order.

    Pure bookkeeping: joining or leaving never notifies anyone.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}

    def join(self, username: str) -> str:
        """Add a user to the roster.

        Joining with a name that is already present returns the existing id.

        Args:
            username: Name of the user

        Returns:
            Identifier assigned to the user

        Raises:
            InvalidArgumentError: If the name is empty or invalid
        """
        name = normalize_username(username)
        if name is None:
            raise InvalidArgumentError(f"invalid username: {username!r}")

        with self._lock:
            existing = self._users.get(name)
            if existing is not None:
                logger.debug("User %s already in roster", name)
                return existing.id

            user = User(id=uuid.uuid4().hex, name=name)
            self._users[name] = user

        logger.debug("User %s joined roster (%s)", name, user.id)
        return user.id

    def leave(self, username: str) -> bool:
        """Remove a user from the roster.

        Returns:
            True if the user was present
        """
        name = normalize_username(username)
        if name is None:
            return False
        with self._lock:
            removed = self._users.pop(name, None)
        if removed is not None:
            logger.debug("User %s left roster", name)
        return removed is not None

    def list(self) -> list[str]:
        """Get present user names in join order."""
        with self._lock:
            return list(self._users)

    def users(self) -> list[User]:
        with self._lock:
            return list(self._users.values())

    def get(self, username: str) -> User | None:
        name = normalize_username(username)
        if name is None:
            return None
        with self._lock:
            return self._users.get(name)

    def __contains__(self, username: object) -> bool:
        return isinstance(username, str) and self.get(username) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)
