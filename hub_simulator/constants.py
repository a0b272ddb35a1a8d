"""Protocol names and defaults for the hub simulator."""

# Hub events (server -> client)
EV_RECEIVE_MESSAGE = "ReceiveMessage"
EV_USER_JOINED = "UserJoined"
EV_USER_LEFT = "UserLeft"
EV_RECEIVE_USER_LIST = "ReceiveUserList"
EV_DISCONNECTED = "Disconnected"
EV_RECONNECTED = "Reconnected"

PROTOCOL_EVENTS = frozenset(
    {
        EV_RECEIVE_MESSAGE,
        EV_USER_JOINED,
        EV_USER_LEFT,
        EV_RECEIVE_USER_LIST,
        EV_DISCONNECTED,
        EV_RECONNECTED,
    }
)

# Hub methods (client -> server)
M_JOIN_CHAT = "JoinChat"
M_SEND_MESSAGE = "SendMessage"
M_LEAVE_CHAT = "LeaveChat"
M_GET_USER_LIST = "GetUserList"

# Reserved sender for hub-originated messages
SYSTEM_SENDER = "System"

REASON_CONNECTION_LOST = "Server connection lost"
REASON_CONNECTION_RESTORED = "Server connection restored"

# Envelope keys
K_V = 0
K_T = 1
K_ID = 2
K_TS = 3
K_METHOD = 4
K_ARGS = 5

ENVELOPE_VERSION = 1
T_INVOCATION = 1

# Simulated timings (seconds)
CONNECT_DELAY = 1.0
DISCONNECT_DELAY = 0.5
INVOKE_DELAY = 0.3
BROADCAST_DELAY = 0.5
ANNOUNCEMENT_INTERVAL = 60.0

MAX_USERNAME_LENGTH = 64
MAX_MESSAGE_LENGTH = 1024

# Maximum messages kept in session history
MAX_HISTORY = 1000

DEFAULT_ANNOUNCEMENTS = (
    "Server will be restarting in 30 minutes for maintenance.",
    "There are currently {count} users online.",
    "New features have been added to the chat!",
    "Remember to be kind to each other.",
)

DEFAULT_PEER_NAMES = ("Alex", "Jamie", "Taylor")

DEFAULT_PEER_REPLIES = (
    "That's interesting!",
    "I agree with that.",
    "Could you explain more?",
    "Thanks for sharing that.",
    "I have a different perspective on this.",
    "Great point!",
)
