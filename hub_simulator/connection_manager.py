"""Connection manager for the simulated hub connection."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from enum import Enum
from typing import TYPE_CHECKING

from .constants import (
    CONNECT_DELAY,
    DISCONNECT_DELAY,
    EV_DISCONNECTED,
    EV_RECONNECTED,
    REASON_CONNECTION_LOST,
    REASON_CONNECTION_RESTORED,
)
from .errors import NotConnectedError
from .utils import resolve, resolved

if TYPE_CHECKING:
    from typing import Callable

    from .events import EventRegistry
    from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Hub connection states."""

    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    DISCONNECTING = "Disconnecting"


class ConnectionManager:
    """Manages the connection state machine and its simulated delays.

    States cycle Disconnected -> Connecting -> Connected -> Disconnecting ->
    Disconnected. ``start`` and ``stop`` return futures that resolve once the
    simulated transition completes.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        events: EventRegistry,
        connect_delay: float = CONNECT_DELAY,
        disconnect_delay: float = DISCONNECT_DELAY,
    ) -> None:
        """Initialize connection manager.

        Args:
            scheduler: Scheduler used for the connect/teardown delays
            events: Registry that receives Disconnected/Reconnected events
            connect_delay: Seconds spent in Connecting
            disconnect_delay: Seconds spent in Disconnecting
        """
        self.scheduler = scheduler
        self.events = events
        self.connect_delay = connect_delay
        self.disconnect_delay = disconnect_delay
        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._start_future: Future | None = None
        self._stop_future: Future | None = None
        self._transition: TimerHandle | None = None
        self.on_connected: Callable[[], None] | None = None
        self.on_connection_closed: Callable[[], None] | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        """Check if the connection is in the Connected state."""
        return self._state is ConnectionState.CONNECTED

    def require_connected(self, operation: str | None = None) -> None:
        """Raise NotConnectedError unless connected.

        Args:
            operation: Name of the operation, used in the error message
        """
        with self._lock:
            if self._state is not ConnectionState.CONNECTED:
                raise NotConnectedError(operation, self._state.value)

    def start(self) -> Future:
        """Start the connection.

        Returns:
            Future resolving True once connected, or False if the attempt was
            abandoned by a stop before it completed
        """
        superseded_stop = None
        with self._lock:
            if self._state is ConnectionState.CONNECTED:
                return resolved(True)

            if self._state is ConnectionState.CONNECTING and self._start_future:
                logger.debug("Connection already in progress")
                return self._start_future

            if self._state is ConnectionState.DISCONNECTING:
                logger.info("Connection start supersedes pending stop")
                self._cancel_transition()
                superseded_stop = self._stop_future
                self._stop_future = None

            self._set_state(ConnectionState.CONNECTING)
            future: Future = Future()
            self._start_future = future
            self._transition = self.scheduler.call_later(
                self.connect_delay, self._finish_start, future
            )

        if superseded_stop is not None:
            resolve(superseded_stop, None)
        return future

    def stop(self) -> Future:
        """Stop the connection.

        Returns:
            Future resolving None once disconnected
        """
        abandoned_start = None
        with self._lock:
            if self._state is ConnectionState.DISCONNECTED:
                return resolved(None)

            if self._state is ConnectionState.DISCONNECTING and self._stop_future:
                return self._stop_future

            was_connected = self._state is ConnectionState.CONNECTED
            if self._state is ConnectionState.CONNECTING:
                logger.info("Abandoning connection attempt")
                self._cancel_transition()
                abandoned_start = self._start_future
                self._start_future = None

            self._set_state(ConnectionState.DISCONNECTING)
            future: Future = Future()
            self._stop_future = future
            self._transition = self.scheduler.call_later(
                self.disconnect_delay, self._finish_stop, future
            )

        if was_connected:
            self._notify(self.on_connection_closed, "on_connection_closed")
        if abandoned_start is not None:
            resolve(abandoned_start, False)
        return future

    def simulate_disconnect(self, reason: str = REASON_CONNECTION_LOST) -> None:
        """Force the Disconnected state immediately and dispatch Disconnected."""
        with self._lock:
            was_connected = self._state is ConnectionState.CONNECTED
            pending_start, pending_stop = self._abort_transition()
            self._set_state(ConnectionState.DISCONNECTED)

        logger.info("Simulated disconnect: %s", reason)
        if was_connected:
            self._notify(self.on_connection_closed, "on_connection_closed")
        if pending_start is not None:
            resolve(pending_start, False)
        if pending_stop is not None:
            resolve(pending_stop, None)
        self.events.dispatch(EV_DISCONNECTED, reason)

    def simulate_reconnect(self, reason: str = REASON_CONNECTION_RESTORED) -> None:
        """Force the Connected state immediately and dispatch Reconnected."""
        with self._lock:
            was_connected = self._state is ConnectionState.CONNECTED
            pending_start, pending_stop = self._abort_transition()
            self._set_state(ConnectionState.CONNECTED)

        logger.info("Simulated reconnect: %s", reason)
        if not was_connected:
            self._notify(self.on_connected, "on_connected")
        if pending_start is not None:
            resolve(pending_start, True)
        if pending_stop is not None:
            resolve(pending_stop, None)
        self.events.dispatch(EV_RECONNECTED, reason)

    def close(self) -> None:
        """Tear down immediately without dispatching any event."""
        with self._lock:
            was_connected = self._state is ConnectionState.CONNECTED
            pending_start, pending_stop = self._abort_transition()
            self._set_state(ConnectionState.DISCONNECTED)

        if was_connected:
            self._notify(self.on_connection_closed, "on_connection_closed")
        if pending_start is not None:
            resolve(pending_start, False)
        if pending_stop is not None:
            resolve(pending_stop, None)

    def _finish_start(self, future: Future) -> None:
        with self._lock:
            if (
                self._start_future is not future
                or self._state is not ConnectionState.CONNECTING
            ):
                return
            self._transition = None
            self._start_future = None
            self._set_state(ConnectionState.CONNECTED)

        logger.info("Hub connection established")
        self._notify(self.on_connected, "on_connected")
        resolve(future, True)

    def _finish_stop(self, future: Future) -> None:
        with self._lock:
            if (
                self._stop_future is not future
                or self._state is not ConnectionState.DISCONNECTING
            ):
                return
            self._transition = None
            self._stop_future = None
            self._set_state(ConnectionState.DISCONNECTED)

        logger.info("Hub connection stopped")
        resolve(future, None)

    def _abort_transition(self) -> tuple[Future | None, Future | None]:
        self._cancel_transition()
        pending = (self._start_future, self._stop_future)
        self._start_future = None
        self._stop_future = None
        return pending

    def _cancel_transition(self) -> None:
        if self._transition is not None:
            self._transition.cancel()
            self._transition = None

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug(
                "Connection state %s -> %s", self._state.value, state.value
            )
        self._state = state

    def _notify(self, callback: Callable[[], None] | None, name: str) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            logger.exception("Error in %s callback: %s", name, e)
