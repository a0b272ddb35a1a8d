"""Exceptions raised by the hub simulator."""

from __future__ import annotations


class HubError(Exception):
    """Base class for hub simulator errors."""

    pass


class NotConnectedError(HubError, RuntimeError):
    """Raised when a hub method is invoked outside the Connected state."""

    def __init__(self, operation: str | None = None, state: object = None) -> None:
        self.operation = operation
        self.state = state
        detail = f" (state: {state})" if state is not None else ""
        if operation:
            super().__init__(f"cannot invoke {operation!r}: not connected{detail}")
        else:
            super().__init__(f"not connected{detail}")


class InvalidArgumentError(HubError, ValueError):
    """Raised when a hub method receives an empty or malformed argument."""

    pass


class UnknownMethodError(HubError):
    """Raised for hub methods the simulator has no handler for."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"unhandled hub method: {method!r}")
