"""Simulated hub client: connection, events, invocations and roster in one session."""

from __future__ import annotations

import inspect
import itertools
import logging
import random
import threading
from collections import deque
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

import cbor2

from .codec import decode, encode
from .config import SimulatorConfig
from .connection_manager import ConnectionManager, ConnectionState
from .constants import (
    EV_RECEIVE_MESSAGE,
    EV_RECEIVE_USER_LIST,
    EV_USER_JOINED,
    EV_USER_LEFT,
    K_ARGS,
    K_METHOD,
    M_GET_USER_LIST,
    M_JOIN_CHAT,
    M_LEAVE_CHAT,
    M_SEND_MESSAGE,
    REASON_CONNECTION_LOST,
    REASON_CONNECTION_RESTORED,
    SYSTEM_SENDER,
)
from .envelope import make_envelope, validate_envelope
from .errors import HubError, InvalidArgumentError, UnknownMethodError
from .events import EventRegistry
from .models import InvocationResult, Message
from .roster import RosterStore
from .scheduler import ThreadScheduler
from .utils import (
    describe_population,
    has_control_characters,
    iso_timestamp,
    normalize_username,
    resolve,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class HubClient:
    """One simulated hub session.

    Every operation that touches the hub requires the Connected state and
    returns a future that resolves after the simulated invoke delay. Events
    caused by an invocation fan out one broadcast delay later. Anything still
    in flight when the connection stops is dropped; the callers' futures
    still resolve.

    Ordering between two invocations is best effort: each one's events
    dispatch after its own delay, nothing more.
    """

    def __init__(
        self,
        config: SimulatorConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize hub client.

        Args:
            config: Simulator settings (defaults if omitted)
            scheduler: Scheduler driving simulated delays. A private
                ThreadScheduler is created and owned when omitted.
        """
        self.config = config or SimulatorConfig()
        self._owns_scheduler = scheduler is None
        self.scheduler: Scheduler = (
            scheduler if scheduler is not None else ThreadScheduler()
        )

        self.events = EventRegistry()
        self.roster = RosterStore()
        self.connection = ConnectionManager(
            self.scheduler,
            self.events,
            connect_delay=self.config.connect_delay_s,
            disconnect_delay=self.config.disconnect_delay_s,
        )
        self.connection.on_connected = self._on_connected
        self.connection.on_connection_closed = self._on_connection_closed

        self._lock = threading.RLock()
        self._rng = random.Random(self.config.random_seed)
        self._message_ids = itertools.count(1)
        self._history: deque[Message] = deque(maxlen=self.config.max_history)
        self._deferred: dict[object, TimerHandle] = {}
        self._pending_results: dict[Future, tuple[TimerHandle, Any]] = {}
        self._announcement: TimerHandle | None = None
        self._closed = False

        self._methods: dict[str, Callable[..., Any]] = {
            M_JOIN_CHAT: self._handle_join_chat,
            M_SEND_MESSAGE: self._handle_send_message,
            M_LEAVE_CHAT: self._handle_leave_chat,
            M_GET_USER_LIST: self._handle_get_user_list,
        }

        for name in self.config.seed_users:
            self.roster.join(name)
        for sender, content in self.config.seed_messages:
            self._record(sender, content)

    def __enter__(self) -> HubClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    def is_connected(self) -> bool:
        return self.connection.is_connected()

    def history(self) -> tuple[Message, ...]:
        """Get a snapshot of session history, oldest first."""
        with self._lock:
            return tuple(self._history)

    def users(self) -> list[str]:
        """Get present user names in join order."""
        return self.roster.list()

    # Connection

    def start_connection(self) -> Future:
        """Start the hub connection.

        Returns:
            Future resolving True once connected
        """
        if self._closed:
            raise HubError("hub client is closed")
        return self.connection.start()

    def stop_connection(self) -> Future:
        """Stop the hub connection, dropping in-flight events."""
        return self.connection.stop()

    # Events

    def on(self, event_name: str, handler: Callable[..., Any]) -> None:
        self.events.on(event_name, handler)

    def off(self, event_name: str, handler: Callable[..., Any]) -> None:
        self.events.off(event_name, handler)

    # Invocation

    def join_chat(self, username: str) -> Future:
        """Join the chat as ``username``.

        Returns:
            Future resolving to an InvocationResult with ``user_id``
        """
        return self.invoke(M_JOIN_CHAT, username)

    def send_message(self, username: str, content: str) -> Future:
        """Send a chat message.

        Returns:
            Future resolving to an InvocationResult with ``message_id``
        """
        return self.invoke(M_SEND_MESSAGE, username, content)

    def leave_chat(self, username: str) -> Future:
        return self.invoke(M_LEAVE_CHAT, username)

    def get_user_list(self) -> Future:
        return self.invoke(M_GET_USER_LIST)

    def invoke(self, method: str, *args: Any) -> Future:
        """Invoke a hub method.

        Args:
            method: Hub method name, e.g. "SendMessage"
            *args: Method arguments

        Returns:
            Future resolving to the method result, or None for methods the
            hub does not handle

        Raises:
            NotConnectedError: If the connection is not Connected
            InvalidArgumentError: If the arguments are rejected
            UnknownMethodError: For unhandled methods when strict_methods is set
        """
        self.connection.require_connected(method)

        if not isinstance(method, str) or not method:
            raise InvalidArgumentError(f"invalid hub method name: {method!r}")

        try:
            payload = encode(make_envelope(method, args))
        except (cbor2.CBOREncodeError, UnicodeEncodeError) as e:
            raise InvalidArgumentError(
                f"arguments for {method!r} cannot be encoded: {e}"
            ) from e

        logger.debug("Invoking %s (%d bytes)", method, len(payload))
        return self._receive(payload)

    def _receive(self, payload: bytes) -> Future:
        env = decode(payload)
        validate_envelope(env)

        method = env[K_METHOD]
        args = env[K_ARGS]

        handler = self._methods.get(method)
        if handler is None:
            error = UnknownMethodError(method)
            if self.config.strict_methods:
                raise error
            logger.warning("%s", error)
            return self._respond(None)

        try:
            inspect.signature(handler).bind(*args)
        except TypeError as e:
            raise InvalidArgumentError(f"bad arguments for {method!r}: {e}") from e

        return self._respond(handler(*args))

    def _respond(self, result: Any) -> Future:
        future: Future = Future()
        with self._lock:
            handle = self.scheduler.call_later(
                self.config.invoke_delay_s, self._deliver_result, future
            )
            self._pending_results[future] = (handle, result)
        return future

    def _deliver_result(self, future: Future) -> None:
        with self._lock:
            entry = self._pending_results.pop(future, None)
        if entry is not None:
            resolve(future, entry[1])

    # Hub methods

    def _handle_join_chat(self, username: str) -> InvocationResult:
        name = self._validate_sender(username)

        with self._lock:
            user_id = self.roster.join(name)
            count = len(self.roster)

        logger.info("%s joined the chat (%d present)", name, count)
        welcome = f"Welcome, {name}! {describe_population(count)}"
        self._defer(
            self.config.round_trip_delay_s,
            self._dispatch_all,
            [
                (EV_USER_JOINED, (name,)),
                (EV_RECEIVE_MESSAGE, (SYSTEM_SENDER, welcome, iso_timestamp())),
            ],
        )
        self._ensure_announcements()
        return InvocationResult(success=True, user_id=user_id)

    def _handle_send_message(self, username: str, content: str) -> InvocationResult:
        sender = self._validate_sender(username)

        if not isinstance(content, str) or not content.strip():
            raise InvalidArgumentError("message content must not be empty")
        if len(content) > self.config.max_message_length:
            raise InvalidArgumentError(
                f"message too long ({len(content)} characters, "
                f"maximum is {self.config.max_message_length})"
            )
        if has_control_characters(content):
            raise InvalidArgumentError("message content contains control characters")

        message = self._record(sender, content)
        logger.debug("Message %d from %s accepted", message.id, sender)
        self._defer(
            self.config.round_trip_delay_s,
            self._dispatch_all,
            [(EV_RECEIVE_MESSAGE, (message.sender, message.content, message.timestamp))],
        )
        self._maybe_schedule_peer_reply(sender)
        return InvocationResult(success=True, message_id=message.id)

    def _handle_leave_chat(self, username: str) -> InvocationResult:
        name = normalize_username(username)
        if name is None:
            raise InvalidArgumentError("username must not be empty")

        removed = self.roster.leave(name)
        if removed:
            logger.info("%s left the chat", name)
            self._defer(
                self.config.round_trip_delay_s,
                self._dispatch_all,
                [(EV_USER_LEFT, (name,))],
            )
        return InvocationResult(success=removed)

    def _handle_get_user_list(self) -> InvocationResult:
        users = self.roster.list()
        self._defer(
            self.config.round_trip_delay_s,
            self._dispatch_all,
            [(EV_RECEIVE_USER_LIST, (list(users),))],
        )
        return InvocationResult(success=True, users=tuple(users))

    def _validate_sender(self, username: Any) -> str:
        name = normalize_username(username)
        if name is None:
            raise InvalidArgumentError("username must not be empty")
        if name.casefold() == SYSTEM_SENDER.casefold():
            raise InvalidArgumentError(f"{SYSTEM_SENDER!r} is a reserved name")
        return name

    def _record(self, sender: str, content: str) -> Message:
        with self._lock:
            message = Message(
                id=next(self._message_ids),
                sender=sender,
                content=content,
                timestamp=iso_timestamp(),
            )
            self._history.append(message)
        return message

    # Deferred work

    def _defer(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        token = object()
        with self._lock:
            self._deferred[token] = self.scheduler.call_later(
                delay, self._run_deferred, token, callback, args
            )

    def _run_deferred(
        self, token: object, callback: Callable[..., Any], args: tuple
    ) -> None:
        with self._lock:
            if self._deferred.pop(token, None) is None:
                return
        if not self.connection.is_connected():
            logger.debug("Dropping deferred hub work: not connected")
            return
        callback(*args)

    def _dispatch_all(self, events: list[tuple[str, tuple]]) -> None:
        for event_name, payload in events:
            if not self.connection.is_connected():
                logger.debug("Dropping %s: connection closed", event_name)
                return
            self.events.dispatch(event_name, *payload)

    def _cancel_deferred(self) -> None:
        with self._lock:
            handles = list(self._deferred.values())
            self._deferred.clear()
        if handles:
            logger.debug("Cancelled %d in-flight hub event(s)", len(handles))
        for handle in handles:
            handle.cancel()

    def _maybe_schedule_peer_reply(self, sender: str) -> None:
        if self.config.peer_reply_probability <= 0:
            return

        with self._lock:
            if self._rng.random() >= self.config.peer_reply_probability:
                return
            peers = [n for n in self.config.peer_names if n != sender]
            if not peers or not self.config.peer_replies:
                return
            peer = self._rng.choice(peers)
            reply = self._rng.choice(self.config.peer_replies)
            low, high = self.config.peer_reply_delay_s
            delay = self.config.round_trip_delay_s + self._rng.uniform(low, high)

        self._defer(delay, self._deliver_peer_reply, peer, reply)

    def _deliver_peer_reply(self, peer: str, reply: str) -> None:
        message = self._record(peer, reply)
        self.events.dispatch(
            EV_RECEIVE_MESSAGE, message.sender, message.content, message.timestamp
        )

    # Announcements

    def _ensure_announcements(self) -> None:
        with self._lock:
            if self._closed or self._announcement is not None:
                return
            if not self.config.announcements:
                return
            if not self.connection.is_connected() or not len(self.roster):
                return
            self._announcement = self.scheduler.call_later(
                self.config.announcement_interval_s, self._announce
            )

    def _announce(self) -> None:
        with self._lock:
            self._announcement = None
            if not self.connection.is_connected():
                return
            count = len(self.roster)
            if not count:
                return
            template = self._rng.choice(self.config.announcements)

        text = template.replace("{count}", str(count))
        self.events.dispatch(EV_RECEIVE_MESSAGE, SYSTEM_SENDER, text, iso_timestamp())
        self._ensure_announcements()

    def _cancel_announcements(self) -> None:
        with self._lock:
            handle = self._announcement
            self._announcement = None
        if handle is not None:
            handle.cancel()

    def _on_connected(self) -> None:
        self._ensure_announcements()

    def _on_connection_closed(self) -> None:
        self._cancel_announcements()
        self._cancel_deferred()

    # Debug surface

    def simulate_user_join(self, username: str) -> None:
        """Dispatch UserJoined immediately, without touching the roster."""
        logger.debug("Simulating UserJoined(%s)", username)
        self.events.dispatch(EV_USER_JOINED, username)

    def simulate_user_leave(self, username: str) -> None:
        """Dispatch UserLeft immediately, without touching the roster."""
        logger.debug("Simulating UserLeft(%s)", username)
        self.events.dispatch(EV_USER_LEFT, username)

    def simulate_message(
        self, username: str, content: str, timestamp: str | None = None
    ) -> None:
        """Dispatch ReceiveMessage immediately, without recording history."""
        logger.debug("Simulating ReceiveMessage from %s", username)
        self.events.dispatch(
            EV_RECEIVE_MESSAGE, username, content, timestamp or iso_timestamp()
        )

    def simulate_user_list(self) -> None:
        self.events.dispatch(EV_RECEIVE_USER_LIST, self.roster.list())

    def simulate_disconnect(self, reason: str = REASON_CONNECTION_LOST) -> None:
        self.connection.simulate_disconnect(reason)

    def simulate_reconnect(self, reason: str = REASON_CONNECTION_RESTORED) -> None:
        self.connection.simulate_reconnect(reason)

    # Teardown

    def close(self) -> None:
        """Tear the session down.

        Cancels every timer, resolves pending invocation results and stops
        the scheduler if this client created it. No events are dispatched.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self.connection.close()
        self._cancel_announcements()
        self._cancel_deferred()

        with self._lock:
            pending = list(self._pending_results.items())
            self._pending_results.clear()
        for future, (handle, result) in pending:
            handle.cancel()
            resolve(future, result)

        if self._owns_scheduler:
            self.scheduler.close()
        logger.debug("Hub client closed")
