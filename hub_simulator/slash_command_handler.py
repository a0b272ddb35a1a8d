"""Slash command handler for the console chat."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import HubError
from .utils import get_timestamp

if TYPE_CHECKING:
    from typing import Callable

    from .hub_client import HubClient
    from .logging_manager import LogManager

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Lines shown by /log without an argument
DEFAULT_LOG_LINES = 20

HELP_TEXT = """Commands:
  /users                   request the user list
  /leave                   leave the chat
  /disconnect              simulate a lost connection
  /reconnect               simulate a restored connection
  /simjoin <name>          simulate another user joining
  /simleave <name>         simulate another user leaving
  /simmsg <name> <text>    simulate a message from another user
  /loglevel [level]        show or set the log level
  /log [n]                 show the last n lines of the log file
  /help                    show this help
  /quit                    exit"""


class SlashCommandHandler:
    """Parses and executes console slash commands against a hub client."""

    def __init__(
        self,
        hub: HubClient,
        get_username: Callable[[], str | None],
        output: Callable[[str], None],
        log_manager: LogManager | None = None,
    ):
        """Initialize slash command handler.

        Args:
            hub: Hub client the commands act on
            get_username: Function that returns the current nickname
            output: Function that writes a line to the console
            log_manager: Logging setup used by /loglevel and /log
        """
        self.hub = hub
        self.get_username = get_username
        self.output = output
        self.log_manager = log_manager
        self.quit_requested = False

    def handle_command(self, text: str) -> bool:
        """Handle a slash command.

        Args:
            text: The command text starting with /

        Returns:
            True if the text was a command, False otherwise
        """
        if not text.startswith("/"):
            return False

        parts = text.split(None, 1)
        command = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""

        try:
            if command in ("/quit", "/exit"):
                self.quit_requested = True
            elif command == "/help":
                self.output(HELP_TEXT)
            elif command == "/users":
                self.hub.get_user_list()
            elif command == "/leave":
                self._handle_leave()
            elif command == "/disconnect":
                self.hub.simulate_disconnect()
            elif command == "/reconnect":
                self.hub.simulate_reconnect()
            elif command == "/simjoin":
                self._require_args(command, args, "<name>")
                self.hub.simulate_user_join(args)
            elif command == "/simleave":
                self._require_args(command, args, "<name>")
                self.hub.simulate_user_leave(args)
            elif command == "/simmsg":
                self._handle_simmsg(args)
            elif command == "/loglevel":
                self._handle_loglevel(args)
            elif command == "/log":
                self._handle_log(args)
            else:
                self._error(f"Unknown command {command}. Type /help for a list.")
        except _UsageError as e:
            self._error(str(e))
        except HubError as e:
            logger.warning("Command %s failed: %s", command, e)
            self._error(str(e))

        return True

    def _handle_leave(self) -> None:
        username = self.get_username()
        if not username:
            self._error("Not in the chat.")
            return
        self.hub.leave_chat(username)

    def _handle_simmsg(self, args: str) -> None:
        parts = args.split(None, 1)
        if len(parts) < 2:
            raise _UsageError("Usage: /simmsg <name> <text>")
        self.hub.simulate_message(parts[0], parts[1])

    def _handle_loglevel(self, args: str) -> None:
        log_manager = self._require_log_manager()
        if not args:
            self.output(f"Log level: {log_manager.get_log_level_name()}")
            return

        level = args.upper()
        if level not in LOG_LEVELS:
            raise _UsageError(f"Usage: /loglevel [{'|'.join(LOG_LEVELS)}]")
        log_manager.set_log_level(level)
        logger.info("Log level set to %s", level)
        self.output(f"Log level set to {level}")

    def _handle_log(self, args: str) -> None:
        log_manager = self._require_log_manager()
        count = DEFAULT_LOG_LINES
        if args:
            try:
                count = int(args)
            except ValueError:
                count = 0
            if count < 1:
                raise _UsageError("Usage: /log [n]")

        lines = log_manager.tail_log(count)
        if not lines:
            self.output(f"No log entries in {log_manager.get_log_file_path()}")
            return
        for line in lines:
            self.output(line.rstrip("\n"))

    def _require_log_manager(self) -> LogManager:
        if self.log_manager is None:
            raise _UsageError("Logging is not managed by this console.")
        return self.log_manager

    def _require_args(self, command: str, args: str, usage: str) -> None:
        if not args:
            raise _UsageError(f"Usage: {command} {usage}")

    def _error(self, text: str) -> None:
        self.output(f"[{get_timestamp()}] ERROR: {text}")


class _UsageError(Exception):
    pass
