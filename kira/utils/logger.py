"""
Logger Utility
==============

Leveled, colored, context-aware logging for the wallet assistant.

Every component creates its own Logger with a short context name, so a
single turn can be followed through the log:

    [2025-01-31T10:30:00] [INFO] [Agent] Turn from U123: convert 50 to...
    [2025-01-31T10:30:01] [INFO] [Router] Selected action: mint
    [2025-01-31T10:30:02] [INFO] [WalletActions] Minted 50.00000 USDi

Usage:
    from kira.utils.logger import Logger

    logger = Logger("History")
    logger.info("Loaded history", {"users": 3})

    router_logger = Logger("Agent").child("Router")
    router_logger.warning("Unknown action selected")
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Log levels, ordered by severity."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def _get_log_level_from_env() -> LogLevel:
    """Read LOG_LEVEL from the environment, defaulting to INFO."""
    return _LEVEL_NAMES.get(os.getenv("LOG_LEVEL", "INFO").upper(), LogLevel.INFO)


class Logger:
    """
    A context-aware logger with colored output.

    Example:
        logger = Logger("WalletActions")
        logger.info("Mint requested", {"user": "U123", "amount": 50})

        try:
            ...
        except WalletServiceError as e:
            logger.error("Mint failed", e)
    """

    def __init__(self, context: str = ""):
        """
        Args:
            context: Prefix shown on every line (e.g. "Agent", "History")
        """
        self.context = context
        self._min_level = _get_log_level_from_env()

    def child(self, child_context: str) -> "Logger":
        """
        Create a logger for a nested operation.

        Logs from Logger("Agent").child("Turn") show as [Agent:Turn].
        """
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def _format_message(self, level: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if level < self._min_level:
            return

        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        print(self._format_message(level_name, message, color), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            print(f"{Colors.DIM}{data_str}{Colors.RESET}", file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a debug message. Only shown when LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an info message."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a warning: something odd happened but the turn continues."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(
        self,
        message: str,
        error: Exception | None = None,
        data: dict[str, Any] | None = None
    ) -> None:
        """
        Log an error message.

        Args:
            message: The error message
            error: Optional exception; its type and text are included
            data: Optional extra structured data (user id, action name, ...)
        """
        payload = dict(data) if data else {}
        if error:
            payload["error_type"] = type(error).__name__
            payload["error_message"] = str(error)
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, payload or None)


# Default logger for quick use outside a component
logger = Logger("Kira")
