"""Invocation envelopes carried between the client side and the simulated hub."""

from __future__ import annotations

import os
import time
from typing import Any

from .constants import (
    ENVELOPE_VERSION,
    K_ARGS,
    K_ID,
    K_METHOD,
    K_T,
    K_TS,
    K_V,
    T_INVOCATION,
)


def make_envelope(
    method: str,
    args: list[Any] | tuple[Any, ...] = (),
    *,
    invocation_id: bytes | None = None,
) -> dict[int, Any]:
    """Build an invocation envelope.

    Args:
        method: Hub method name
        args: Positional arguments for the method
        invocation_id: Optional 8-byte id (random if omitted)

    Returns:
        Envelope dict keyed by the K_* integer constants
    """
    return {
        K_V: ENVELOPE_VERSION,
        K_T: T_INVOCATION,
        K_ID: invocation_id if invocation_id is not None else os.urandom(8),
        K_TS: int(time.time() * 1000),
        K_METHOD: method,
        K_ARGS: list(args),
    }


def validate_envelope(env: Any) -> None:
    """Check that a decoded value is a well-formed invocation envelope.

    Raises:
        ValueError: If a field is missing or has the wrong type
    """
    if not isinstance(env, dict):
        raise ValueError("envelope must be a map")

    if env.get(K_V) != ENVELOPE_VERSION:
        raise ValueError(f"unsupported envelope version: {env.get(K_V)!r}")

    if env.get(K_T) != T_INVOCATION:
        raise ValueError(f"unsupported envelope type: {env.get(K_T)!r}")

    mid = env.get(K_ID)
    if not isinstance(mid, (bytes, bytearray)) or len(mid) != 8:
        raise ValueError("envelope id must be 8 bytes")

    if not isinstance(env.get(K_TS), int):
        raise ValueError("envelope timestamp must be an int")

    method = env.get(K_METHOD)
    if not isinstance(method, str) or not method:
        raise ValueError("envelope method must be a non-empty string")

    if not isinstance(env.get(K_ARGS), list):
        raise ValueError("envelope args must be a list")
