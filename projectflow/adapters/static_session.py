"""Static session adapter — implements SessionPort without an auth server.

Holds at most one session in memory (seeded from settings for the
command-line entry point) and broadcasts sign-in/sign-out/refresh events to
subscribers, the way a hosted auth SDK would.
"""

from __future__ import annotations

import logging
from typing import Callable

from projectflow.ports.session_port import Session, SessionEvent, SessionListener

logger = logging.getLogger(__name__)


class StaticSessionProvider:
    """In-process implementation of SessionPort."""

    def __init__(self, session: Session | None = None) -> None:
        self._session = session
        self._listeners: list[SessionListener] = []

    @classmethod
    def from_settings(cls) -> StaticSessionProvider:
        from projectflow.config import settings

        if not settings.SESSION_USER_ID:
            return cls()
        return cls(Session(
            user_id=settings.SESSION_USER_ID,
            email=settings.SESSION_EMAIL,
            name=settings.SESSION_NAME,
            access_token=settings.SESSION_ACCESS_TOKEN,
        ))

    async def get_session(self) -> Session | None:
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            await listener(event, self._session)

    async def sign_in(self, session: Session) -> None:
        self._session = session
        logger.info("Signed in as %s", session.user_id)
        await self._emit(SessionEvent.SIGNED_IN)

    async def refresh(self, access_token: str) -> None:
        if self._session is None:
            return
        self._session = self._session.model_copy(update={"access_token": access_token})
        await self._emit(SessionEvent.TOKEN_REFRESHED)

    async def sign_out(self) -> None:
        had_session = self._session is not None
        self._session = None
        if had_session:
            logger.info("Signed out")
            await self._emit(SessionEvent.SIGNED_OUT)
