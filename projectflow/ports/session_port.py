"""Session port — abstract interface for the authentication provider.

The bootstrapper asks it whether a session exists and listens to its
session-state-changed notifications.
"""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, Protocol

from pydantic import BaseModel


class SessionEvent(Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class Session(BaseModel):
    """An authenticated session as reported by the provider."""

    user_id: str
    email: str = ""
    name: str = ""
    access_token: str = ""
    avatar: str | None = None


SessionListener = Callable[[SessionEvent, "Session | None"], Awaitable[None]]


class SessionPort(Protocol):
    """Abstract session provider used by the bootstrapper and sync queue."""

    async def get_session(self) -> Session | None: ...

    async def sign_out(self) -> None: ...

    def subscribe(self, listener: SessionListener) -> Callable[[], None]: ...
