"""CBOR codec for hub invocation envelopes."""

from __future__ import annotations

from typing import Any

import cbor2


def encode(obj: Any) -> bytes:
    return cbor2.dumps(obj)


def decode(data: bytes) -> Any:
    return cbor2.loads(data)
