"""Console entry point: chat against the simulated hub."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable
from concurrent.futures import TimeoutError as FutureTimeoutError

from .config import get_saved_nickname, load_simulator_config, save_nickname
from .constants import (
    EV_DISCONNECTED,
    EV_RECEIVE_MESSAGE,
    EV_RECEIVE_USER_LIST,
    EV_RECONNECTED,
    EV_USER_JOINED,
    EV_USER_LEFT,
)
from .errors import HubError
from .hub_client import HubClient
from .logging_manager import LogManager
from .slash_command_handler import SlashCommandHandler
from .utils import get_timestamp

logger = logging.getLogger(__name__)

# Seconds to wait for a simulated transition before giving up
WAIT_TIMEOUT = 10.0


class ChatConsole:
    """Line-based chat front end for a HubClient."""

    def __init__(
        self,
        hub: HubClient,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        log_manager: LogManager | None = None,
        remember_nickname: bool = False,
    ) -> None:
        """Initialize the console.

        Args:
            hub: Hub client to chat through
            input_func: Function that reads one line of input
            output: Function that writes a line to the console
            log_manager: Logging setup exposed through /loglevel and /log
            remember_nickname: Offer the saved nickname and save the one used
        """
        self.hub = hub
        self.input = input_func
        self.output = output
        self.username: str | None = None
        self.remember_nickname = remember_nickname
        self.commands = SlashCommandHandler(
            hub, lambda: self.username, output, log_manager=log_manager
        )

        hub.on(EV_RECEIVE_MESSAGE, self._on_message)
        hub.on(EV_USER_JOINED, self._on_user_joined)
        hub.on(EV_USER_LEFT, self._on_user_left)
        hub.on(EV_RECEIVE_USER_LIST, self._on_user_list)
        hub.on(EV_DISCONNECTED, self._on_disconnected)
        hub.on(EV_RECONNECTED, self._on_reconnected)

    def run(self) -> int:
        """Run the console until /quit or end of input.

        Returns:
            Process exit code
        """
        saved = get_saved_nickname() if self.remember_nickname else ""
        prompt = f"Nickname [{saved}]: " if saved else "Nickname: "
        try:
            name = self.input(prompt).strip() or saved
        except (EOFError, KeyboardInterrupt):
            return 1

        self.output("Connecting...")
        try:
            self.hub.start_connection().result(timeout=WAIT_TIMEOUT)
            result = self.hub.join_chat(name).result(timeout=WAIT_TIMEOUT)
        except HubError as e:
            self.output(f"ERROR: {e}")
            return 1
        except FutureTimeoutError:
            self.output("ERROR: timed out connecting to the hub")
            return 1

        self.username = name.strip()
        logger.info("Joined as %s (%s)", self.username, result.user_id)
        if self.remember_nickname:
            save_nickname(self.username)
        self.output("Connected. Type /help for commands.")

        while not self.commands.quit_requested:
            try:
                line = self.input("")
            except (EOFError, KeyboardInterrupt):
                break
            self.handle_line(line)

        try:
            self.hub.stop_connection().result(timeout=WAIT_TIMEOUT)
        except FutureTimeoutError:
            logger.warning("Timed out stopping the hub connection")
        return 0

    def handle_line(self, line: str) -> None:
        text = line.rstrip("\n")
        if not text.strip():
            return
        if self.commands.handle_command(text):
            return
        if not self.username:
            self.output("ERROR: not in the chat")
            return
        try:
            self.hub.send_message(self.username, text)
        except HubError as e:
            self.output(f"ERROR: {e}")

    def _on_message(self, sender: str, content: str, timestamp: str | None = None) -> None:
        marker = " (you)" if sender == self.username else ""
        self.output(f"[{get_timestamp()}] <{sender}{marker}> {content}")

    def _on_user_joined(self, username: str) -> None:
        self.output(f"[{get_timestamp()}] * {username} joined")

    def _on_user_left(self, username: str) -> None:
        self.output(f"[{get_timestamp()}] * {username} left")

    def _on_user_list(self, users: list[str]) -> None:
        self.output(f"[{get_timestamp()}] Users: {', '.join(users) or '(none)'}")

    def _on_disconnected(self, reason: str) -> None:
        self.output(f"[{get_timestamp()}] !! Disconnected: {reason}")

    def _on_reconnected(self, reason: str) -> None:
        self.output(f"[{get_timestamp()}] !! Reconnected: {reason}")


def main() -> int:
    """Entry point for the console chat."""
    log_level = os.environ.get("HUB_SIM_LOG_LEVEL", "WARNING")
    log_manager = LogManager()
    log_manager.setup_logging(
        level=log_level,
        log_to_file=os.environ.get("HUB_SIM_LOG_FILE", "") == "1",
    )

    config = load_simulator_config()
    with HubClient(config) as hub:
        return ChatConsole(
            hub, log_manager=log_manager, remember_nickname=True
        ).run()


if __name__ == "__main__":
    sys.exit(main())
