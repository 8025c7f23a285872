"""
ProjectFlow — Bootstrap / Sync Orchestrator.

Fills the store at startup and keeps it in step with the session provider.

    IDLE -> CHECKING_SESSION -> UNAUTHENTICATED ----------------> READY
                             -> FETCHING_PROFILE -> FETCHING_DATA -> READY
    (any unexpected exception)  -> ERROR -> READY

Data sources, in order of preference:
1. the REST API's consolidated fetch (per-collection calls if that fails),
2. the durable cache, when it holds a stored user,
3. the built-in demo dataset.

Every remote call degrades to an empty result on RemoteError. Only an
unexpected exception reaches the top-level handler, which sets the error
flag, shows one toast and clears the loading indicator.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from projectflow.core.actions import (
    Logout,
    SetAccessibility,
    SetActivities,
    SetAuthenticated,
    SetCustomers,
    SetError,
    SetIncomes,
    SetLoading,
    SetLocale,
    SetNotifications,
    SetProjects,
    SetTasks,
    SetTheme,
    SetTimeEntries,
    SetUser,
    StartTimer,
)
from projectflow.core.normalize import (
    COLLECTION_NORMALIZERS,
    normalize_accessibility,
    normalize_active_timer,
    normalize_snapshot,
    normalize_user,
)
from projectflow.core.single_flight import SingleFlight
from projectflow.data.defaults import default_dataset
from projectflow.ports.remote_port import RemoteError
from projectflow.ports.session_port import SessionEvent

if TYPE_CHECKING:
    from projectflow.core.store import AppState, Store
    from projectflow.data.cache import DurableCache
    from projectflow.data.models import User
    from projectflow.ports.notification_port import NotificationPort
    from projectflow.ports.remote_port import RemotePort
    from projectflow.ports.session_port import Session, SessionPort

logger = logging.getLogger(__name__)

INIT_ERROR = "Failed to initialize app"
INIT_TOAST = "Failed to load application data"

# Snapshot key -> REST collection, for the per-collection fallback
_COLLECTION_PATHS = {
    "projects": "projects",
    "tasks": "tasks",
    "customers": "customers",
    "timeEntries": "time-entries",
    "incomes": "incomes",
    "notifications": "notifications",
    "activities": "activities",
}

_ANONYMOUS = ""


class BootPhase(Enum):
    IDLE = "idle"
    CHECKING_SESSION = "checking_session"
    UNAUTHENTICATED = "unauthenticated"
    FETCHING_PROFILE = "fetching_profile"
    FETCHING_DATA = "fetching_data"
    READY = "ready"
    ERROR = "error"


def _has_data(snapshot: dict[str, list]) -> bool:
    return any(snapshot.get(key) for key in COLLECTION_NORMALIZERS)


class Bootstrapper:
    """Startup state machine and session-change handler."""

    def __init__(
        self,
        store: Store,
        remote: RemotePort,
        session: SessionPort,
        cache: DurableCache,
        notifier: NotificationPort,
    ) -> None:
        self._store = store
        self._remote = remote
        self._session = session
        self._cache = cache
        self._notifier = notifier
        self._flight = SingleFlight()
        self._unsubscribe: Callable[[], None] | None = None
        self.phase = BootPhase.IDLE
        self.source: str | None = None        # "remote" | "cache" | "defaults"
        self.last_error: BaseException | None = None

    def _enter(self, phase: BootPhase) -> None:
        logger.debug("Bootstrap: %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def start(self) -> AppState:
        """Run the startup sequence once. Never raises."""
        await self._guarded(self._boot)
        return self._store.state

    async def handle_session_event(self, event: SessionEvent, session: Session | None) -> None:
        """React to a session-state-changed notification from the provider."""
        logger.info("Session event: %s", event.value)
        if event == SessionEvent.SIGNED_IN and session is not None:
            await self._guarded(lambda: self._sign_in(session))
        elif event == SessionEvent.SIGNED_OUT:
            self._remote.set_access_token("")
            self._store.dispatch(Logout(remote=False))
            self.source = None
            self._enter(BootPhase.UNAUTHENTICATED)
        elif event == SessionEvent.TOKEN_REFRESHED:
            if session is not None:
                self._remote.set_access_token(session.access_token)
            self._store.dispatch(SetAuthenticated(True))

    def attach(self) -> None:
        """Subscribe to the session provider's notifications."""
        if self._unsubscribe is None:
            self._unsubscribe = self._session.subscribe(self.handle_session_event)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _guarded(self, step: Callable[[], Any]) -> None:
        self._store.dispatch(SetLoading(True))
        try:
            await step()
            self._enter(BootPhase.READY)
        except Exception as exc:
            logger.exception("Bootstrap failed")
            self.last_error = exc
            self._enter(BootPhase.ERROR)
            self._store.dispatch(SetError(INIT_ERROR))
            self._notifier.show_error(INIT_TOAST)
            self._enter(BootPhase.READY)
        finally:
            self._store.dispatch(SetLoading(False))

    async def _boot(self) -> None:
        self._enter(BootPhase.CHECKING_SESSION)
        session = await self._current_session()
        if session is None:
            await self._load_unauthenticated()
        else:
            await self._load_for_session(session)
        self._restore_preferences()

    async def _sign_in(self, session: Session) -> None:
        await self._load_for_session(session)
        self._restore_preferences()

    async def _current_session(self) -> Session | None:
        try:
            return await self._session.get_session()
        except RemoteError as exc:
            logger.warning("Session lookup failed, continuing signed out: %s", exc)
            return None

    async def _load_unauthenticated(self) -> None:
        self._enter(BootPhase.UNAUTHENTICATED)
        snapshot = await self._fetch(None)
        if snapshot is None:
            return
        if _has_data(snapshot):
            self._adopt(snapshot, source="remote")
        else:
            self._load_fallback()

    async def _load_for_session(self, session: Session) -> None:
        self._enter(BootPhase.FETCHING_PROFILE)
        if session.access_token:
            self._remote.set_access_token(session.access_token)

        user = await self._fetch_profile(session)
        if user is None:
            logger.warning("No profile for %s, falling back to offline data", session.user_id)
            await self._load_unauthenticated()
            return

        self._store.dispatch(SetUser(user))
        self._store.dispatch(SetAuthenticated(True))
        self._enter(BootPhase.FETCHING_DATA)
        snapshot = await self._fetch(user.id)
        if snapshot is not None:
            self._adopt(snapshot, source="remote")

    # ------------------------------------------------------------------
    # Remote reads (all degrade on RemoteError)
    # ------------------------------------------------------------------

    async def _fetch_profile(self, session: Session) -> User | None:
        users = self._remote.collection("users")
        try:
            raw = await users.get_by_id(session.user_id)
        except RemoteError as exc:
            if exc.status != 404:
                logger.warning("Profile lookup failed: %s", exc)
                return None
            raw = await self._create_profile(session)
        return normalize_user(raw)

    async def _create_profile(self, session: Session) -> dict | None:
        logger.info("Creating profile for %s", session.user_id)
        try:
            return await self._remote.collection("users").create({
                "id": session.user_id,
                "name": session.name or session.email.split("@")[0],
                "email": session.email,
                "role": "contributor",
                "avatar": session.avatar,
            })
        except RemoteError as exc:
            logger.warning("Profile creation failed: %s", exc)
            return None

    async def _fetch(self, user_id: str | None) -> dict[str, list] | None:
        """Coalesced consolidated fetch. None means a newer fetch superseded this one."""
        key = user_id or _ANONYMOUS
        snapshot = await self._flight.run(key, lambda: self._fetch_initial(user_id))
        if not self._flight.is_current(key):
            logger.info("Discarding superseded fetch for %r", key)
            return None
        return snapshot

    async def _fetch_initial(self, user_id: str | None) -> dict[str, list]:
        try:
            raw = await self._remote.get_initial_data(user_id)
        except RemoteError as exc:
            logger.warning("Consolidated fetch failed: %s", exc)
            if user_id is None:
                return normalize_snapshot({})
            return await self._fetch_each(user_id)
        return normalize_snapshot(raw)

    async def _fetch_each(self, user_id: str) -> dict[str, list]:
        raw: dict[str, list] = {}
        for key, path in _COLLECTION_PATHS.items():
            try:
                raw[key] = await self._remote.collection(path).get_all(user_id=user_id)
            except RemoteError as exc:
                logger.warning("Fetching %s failed: %s", path, exc)
                raw[key] = []
        return normalize_snapshot(raw)

    # ------------------------------------------------------------------
    # Adoption
    # ------------------------------------------------------------------

    def _load_fallback(self) -> None:
        cached_user = normalize_user(self._cache.get("user"))
        if cached_user is None:
            data = default_dataset()
            self._store.dispatch(SetUser(data["user"]))
            self._adopt(data, source="defaults")
            return

        self._store.dispatch(SetUser(cached_user))
        cached = {key: self._cache.get(key) for key in COLLECTION_NORMALIZERS}
        self._adopt(normalize_snapshot(cached), source="cache")

    def _adopt(self, snapshot: dict[str, list], source: str) -> None:
        logger.info("Using %s data", source)
        dispatch = self._store.dispatch
        # tasks first, so projects get their progress from the new task set
        dispatch(SetTasks(snapshot["tasks"]))
        dispatch(SetProjects(snapshot["projects"]))
        dispatch(SetCustomers(snapshot["customers"]))
        dispatch(SetTimeEntries(snapshot["timeEntries"]))
        dispatch(SetIncomes(snapshot["incomes"]))
        dispatch(SetNotifications(snapshot["notifications"]))
        dispatch(SetActivities(snapshot["activities"]))
        self.source = source

    def _restore_preferences(self) -> None:
        from projectflow.config import settings

        theme = self._cache.get("theme")
        if theme:
            self._store.dispatch(SetTheme(theme))
        self._store.dispatch(SetLocale(self._cache.get("locale") or settings.DEFAULT_LOCALE))

        accessibility = normalize_accessibility(self._cache.get("accessibilitySettings"))
        if accessibility is not None:
            self._store.dispatch(SetAccessibility(accessibility))

        timer = normalize_active_timer(self._cache.get("activeTimer"))
        if timer is not None and self._store.state.active_timer != timer:
            self._store.dispatch(StartTimer(timer))
