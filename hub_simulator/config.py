"""Configuration for the hub simulator."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from .constants import (
    ANNOUNCEMENT_INTERVAL,
    BROADCAST_DELAY,
    CONNECT_DELAY,
    DEFAULT_ANNOUNCEMENTS,
    DEFAULT_PEER_NAMES,
    DEFAULT_PEER_REPLIES,
    DISCONNECT_DELAY,
    INVOKE_DELAY,
    MAX_HISTORY,
    MAX_MESSAGE_LENGTH,
)
from .utils import expand_path

logger = logging.getLogger(__name__)

_TUPLE_FIELDS = (
    "announcements",
    "seed_users",
    "peer_names",
    "peer_replies",
    "peer_reply_delay_s",
)

# Keys the console front end keeps in the same file
_FRONTEND_KEYS = {"nickname"}


@dataclass(frozen=True)
class SimulatorConfig:
    connect_delay_s: float = CONNECT_DELAY
    disconnect_delay_s: float = DISCONNECT_DELAY
    invoke_delay_s: float = INVOKE_DELAY
    broadcast_delay_s: float = BROADCAST_DELAY
    announcement_interval_s: float = ANNOUNCEMENT_INTERVAL
    announcements: tuple[str, ...] = DEFAULT_ANNOUNCEMENTS
    max_message_length: int = MAX_MESSAGE_LENGTH
    max_history: int = MAX_HISTORY
    strict_methods: bool = False
    seed_users: tuple[str, ...] = ()
    seed_messages: tuple[tuple[str, str], ...] = ()
    peer_names: tuple[str, ...] = DEFAULT_PEER_NAMES
    peer_replies: tuple[str, ...] = DEFAULT_PEER_REPLIES
    peer_reply_probability: float = 0.0
    peer_reply_delay_s: tuple[float, float] = (2.0, 7.0)
    random_seed: int | None = None

    def __post_init__(self) -> None:
        for name in (
            "connect_delay_s",
            "disconnect_delay_s",
            "invoke_delay_s",
            "broadcast_delay_s",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

        if self.announcement_interval_s <= 0:
            raise ValueError("announcement_interval_s must be positive")

        if self.max_message_length < 1:
            raise ValueError("max_message_length must be at least 1")

        if self.max_history < 1:
            raise ValueError("max_history must be at least 1")

        if not 0.0 <= self.peer_reply_probability <= 1.0:
            raise ValueError("peer_reply_probability must be between 0 and 1")

        for entry in self.seed_messages:
            if (
                not isinstance(entry, tuple)
                or len(entry) != 2
                or not all(isinstance(part, str) and part.strip() for part in entry)
            ):
                raise ValueError(
                    f"seed_messages entries must be (sender, content) pairs: {entry!r}"
                )

        if len(self.peer_reply_delay_s) != 2:
            raise ValueError("peer_reply_delay_s must be a (min, max) pair")
        low, high = self.peer_reply_delay_s
        if low < 0 or high < low:
            raise ValueError("peer_reply_delay_s must satisfy 0 <= min <= max")

    @property
    def round_trip_delay_s(self) -> float:
        """Seconds from an accepted invocation until its events fan out."""
        return self.invoke_delay_s + self.broadcast_delay_s

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimulatorConfig:
        """Build a config from a dict, ignoring unknown keys.

        Args:
            data: Mapping as stored in the JSON config file

        Returns:
            SimulatorConfig with defaults for missing keys
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known - _FRONTEND_KEYS)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))

        values = {k: v for k, v in data.items() if k in known}
        for name in _TUPLE_FIELDS:
            if name in values and isinstance(values[name], list):
                values[name] = tuple(values[name])
        if isinstance(values.get("seed_messages"), list):
            values["seed_messages"] = tuple(
                tuple(entry) if isinstance(entry, list) else entry
                for entry in values["seed_messages"]
            )
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for name in _TUPLE_FIELDS:
            data[name] = list(data[name])
        data["seed_messages"] = [list(entry) for entry in self.seed_messages]
        return data


def get_config_path() -> Path:
    """Get path to the simulator config file.

    Can be overridden with HUB_SIM_CONFIG environment variable.
    """
    config_path = os.environ.get("HUB_SIM_CONFIG")
    if config_path:
        return Path(expand_path(config_path))
    return Path(expand_path("~/.hub-simulator/config.json"))


def load_config() -> dict:
    """Load saved simulator settings."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning("Config file %s does not hold an object", config_path)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse config file %s: %s", config_path, e)
        except OSError as e:
            logger.warning("Failed to read config file %s: %s", config_path, e)
    return {}


def load_simulator_config() -> SimulatorConfig:
    """Load the config file into a SimulatorConfig, falling back to defaults."""
    data = load_config()
    try:
        return SimulatorConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        logger.warning("Invalid simulator config, using defaults: %s", e)
        return SimulatorConfig()


def save_config(config: dict) -> None:
    """Save simulator settings."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        try:
            os.chmod(config_path, 0o600)
        except OSError as e:
            logger.warning(
                "Failed to set permissions on config file %s: %s", config_path, e
            )
    except OSError as e:
        logger.error("Failed to save config to %s: %s", config_path, e)
        print(
            f"Warning: Failed to save config to {config_path}: {e}",
            file=sys.stderr,
        )


def get_saved_nickname() -> str:
    """Get the nickname remembered from the last console session."""
    nickname = load_config().get("nickname", "")
    return nickname if isinstance(nickname, str) else ""


def save_nickname(nickname: str) -> None:
    """Remember the console nickname, keeping the other saved settings."""
    config = load_config()
    config["nickname"] = nickname
    save_config(config)
