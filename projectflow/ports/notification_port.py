"""Notification port — abstract interface for user-visible toasts.

Core modules depend on this protocol, never on a specific UI.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Abstract toast interface used by core modules."""

    def show_error(self, text: str) -> None: ...

    def show_success(self, text: str) -> None: ...
