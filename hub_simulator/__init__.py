"""Client-side simulation of a real-time chat hub connection."""

from .config import SimulatorConfig
from .connection_manager import ConnectionManager, ConnectionState
from .errors import (
    HubError,
    InvalidArgumentError,
    NotConnectedError,
    UnknownMethodError,
)
from .events import EventRegistry
from .hub_client import HubClient
from .models import InvocationResult, Message, User
from .roster import RosterStore
from .scheduler import ManualScheduler, ThreadScheduler, TimerHandle

__version__ = "0.1.0"

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "EventRegistry",
    "HubClient",
    "HubError",
    "InvalidArgumentError",
    "InvocationResult",
    "ManualScheduler",
    "Message",
    "NotConnectedError",
    "RosterStore",
    "SimulatorConfig",
    "ThreadScheduler",
    "TimerHandle",
    "UnknownMethodError",
    "User",
]
