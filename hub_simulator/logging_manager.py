"""Logging configuration for the hub simulator."""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FILE_NAME = "hub-simulator.log"


class LogManager:
    """Configures root logging with console and rotating file output."""

    def __init__(self, app_dir: Path | None = None):
        """Initialize log manager.

        Args:
            app_dir: Application directory for log files.
                     Defaults to ~/.hub-simulator
        """
        self.app_dir = app_dir or Path.home() / ".hub-simulator"
        self.log_dir = self.app_dir / "logs"

    def setup_logging(
        self,
        level: str = "INFO",
        log_to_file: bool = False,
        log_to_console: bool = True,
        max_bytes: int = 5 * 1024 * 1024,
        backup_count: int = 3,
        format_string: str | None = None,
    ) -> None:
        """Configure application logging.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_to_file: Whether to log to a rotating file under log_dir
            log_to_console: Whether to log to stderr
            max_bytes: Maximum size of log file before rotation
            backup_count: Number of rotated files to keep
            format_string: Custom format string for log messages
        """
        numeric_level = getattr(logging, level.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)
        root_logger.handlers.clear()

        formatter = logging.Formatter(
            format_string or "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )

        if log_to_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(numeric_level)
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        if log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self.get_log_file_path(),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    def get_log_file_path(self) -> Path:
        return self.log_dir / LOG_FILE_NAME

    def get_log_level_name(self) -> str:
        return logging.getLevelName(logging.getLogger().level)

    def set_log_level(self, level: str) -> None:
        """Set log level on the root logger and all of its handlers.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        numeric_level = getattr(logging, level.upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)

        for handler in root_logger.handlers:
            handler.setLevel(numeric_level)

    def tail_log(self, lines: int = 100) -> list[str]:
        """Get the last N lines from the current log file."""
        log_file = self.get_log_file_path()
        if not log_file.exists():
            return []

        try:
            with open(log_file, encoding="utf-8") as f:
                return f.readlines()[-lines:]
        except OSError:
            return []
