"""Logging notification adapter — implements NotificationPort.

Headless stand-in for on-screen toasts: messages go to the log and are kept
so callers (and tests) can inspect what the user would have seen.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LogNotifier:
    """Logging implementation of NotificationPort."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.successes: list[str] = []

    def show_error(self, text: str) -> None:
        self.errors.append(text)
        logger.error("Toast: %s", text)

    def show_success(self, text: str) -> None:
        self.successes.append(text)
        logger.info("Toast: %s", text)
