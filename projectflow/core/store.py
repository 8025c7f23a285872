"""
ProjectFlow — State Store.

The canonical in-memory snapshot of every entity plus session and UI flags,
changed only through `Store.dispatch(action)`.

`reduce(state, action)` is the pure transition: it returns the new state and
a list of effects. The Store then applies the effects in two steps:
1. cache writes (PersistSlice / ClearCache) happen before dispatch returns,
2. remote calls (RemoteSync / RemoteSignOut) go onto the SyncQueue and run in
   the background. The local state is never rolled back if they fail.

Special transitions:
- any change to tasks or projects recomputes project progress; projects
  whose progress moved get a background `update` of that field,
- adding an activity or notification that duplicates an existing one
  (same text, same user, created within a second) is a no-op,
- Logout clears the cache, resets state and queues a remote sign-out.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Callable, Union

from projectflow.config import SUPPORTED_LOCALES, SUPPORTED_THEMES
from projectflow.core import actions as a
from projectflow.core.normalize import (
    normalize_incomes,
    normalize_time_entries,
)
from projectflow.core.progress import recompute_progress
from projectflow.core.sync_queue import SyncOp
from projectflow.data.models import (
    AccessibilitySettings,
    ActiveTimer,
    Activity,
    Customer,
    Entity,
    Income,
    Notification,
    Project,
    Task,
    TimeEntry,
    User,
)

if TYPE_CHECKING:
    from projectflow.core.sync_queue import SyncJob, SyncQueue
    from projectflow.data.cache import DurableCache

logger = logging.getLogger(__name__)

DEDUP_WINDOW = timedelta(seconds=1)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AppState:
    user: User | None = None
    projects: list[Project] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    customers: list[Customer] = field(default_factory=list)
    time_entries: list[TimeEntry] = field(default_factory=list)
    incomes: list[Income] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    activities: list[Activity] = field(default_factory=list)
    active_timer: ActiveTimer | None = None
    timer_elapsed: int = 0
    locale: str = "en"
    theme: str = "light"
    accessibility: AccessibilitySettings = field(default_factory=AccessibilitySettings)
    loading: bool = True
    error: str | None = None
    is_authenticated: bool = False


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PersistSlice:
    key: str
    value: Any              # None removes the key


@dataclass(frozen=True)
class ClearCache:
    pass


@dataclass(frozen=True)
class RemoteSync:
    collection: str
    op: SyncOp
    entity_id: str
    payload: dict[str, Any] | None = None


@dataclass(frozen=True)
class RemoteSignOut:
    pass


Effect = Union[PersistSlice, ClearCache, RemoteSync, RemoteSignOut]
Result = tuple[AppState, list[Effect]]


# ---------------------------------------------------------------------------
# Entity collections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Slice:
    attr: str                                   # AppState field
    cache_key: str
    collection: str                             # REST collection
    prepare: Callable[[list], list] = list      # applied to every new list


PROJECTS = _Slice("projects", "projects", "projects")
TASKS = _Slice("tasks", "tasks", "tasks")
CUSTOMERS = _Slice("customers", "customers", "customers")
TIME_ENTRIES = _Slice("time_entries", "timeEntries", "time-entries", normalize_time_entries)
INCOMES = _Slice("incomes", "incomes", "incomes", normalize_incomes)
NOTIFICATIONS = _Slice("notifications", "notifications", "notifications")
ACTIVITIES = _Slice("activities", "activities", "activities")


def _persist(slice_: _Slice, items: list[Entity]) -> PersistSlice:
    return PersistSlice(slice_.cache_key, [item.to_json() for item in items])


def _with_items(state: AppState, slice_: _Slice, items: list, sync: list[Effect]) -> Result:
    """Install a new list for a slice, recomputing progress when it matters."""
    items = slice_.prepare(items)
    changes: dict[str, Any] = {slice_.attr: items}
    effects: list[Effect] = [_persist(slice_, items)]

    if slice_ in (PROJECTS, TASKS):
        projects = items if slice_ is PROJECTS else state.projects
        tasks = items if slice_ is TASKS else state.tasks
        projects, changed = recompute_progress(projects, tasks)
        changes["projects"] = projects
        if slice_ is PROJECTS:
            effects = [_persist(PROJECTS, projects)]
            # a created/updated project already carries its progress in the payload
            touched = {e.entity_id for e in sync if isinstance(e, RemoteSync)}
            sync = [_refresh_payload(e, projects) for e in sync]
            changed = [p for p in changed if p.id not in touched]
        elif changed:
            effects.append(_persist(PROJECTS, projects))
        for project in changed:
            logger.debug("Progress of project %s is now %d", project.id, project.progress)
            effects.append(RemoteSync(
                PROJECTS.collection, SyncOp.UPDATE, project.id, {"progress": project.progress},
            ))

    return dataclasses.replace(state, **changes), effects + sync


def _refresh_payload(effect: RemoteSync, projects: list[Project]) -> RemoteSync:
    if effect.op == SyncOp.DELETE:
        return effect
    for project in projects:
        if project.id == effect.entity_id:
            return dataclasses.replace(effect, payload=project.to_json())
    return effect


def _set(state: AppState, slice_: _Slice, items: list) -> Result:
    return _with_items(state, slice_, list(items), [])


def _add(state: AppState, slice_: _Slice, item: Entity, *, front: bool = False) -> Result:
    item = slice_.prepare([item])[0]
    current = getattr(state, slice_.attr)
    items = [item, *current] if front else [*current, item]
    sync = [RemoteSync(slice_.collection, SyncOp.CREATE, item.id, item.to_json())]
    return _with_items(state, slice_, items, sync)


def _update(state: AppState, slice_: _Slice, item: Entity) -> Result:
    item = slice_.prepare([item])[0]
    current = getattr(state, slice_.attr)
    if not any(existing.id == item.id for existing in current):
        logger.debug("Ignoring update of unknown %s %s", slice_.attr, item.id)
        return state, []
    items = [item if existing.id == item.id else existing for existing in current]
    sync = [RemoteSync(slice_.collection, SyncOp.UPDATE, item.id, item.to_json())]
    return _with_items(state, slice_, items, sync)


def _delete(state: AppState, slice_: _Slice, entity_id: str) -> Result:
    current = getattr(state, slice_.attr)
    items = [existing for existing in current if existing.id != entity_id]
    if len(items) == len(current):
        logger.debug("Ignoring delete of unknown %s %s", slice_.attr, entity_id)
        return state, []
    sync = [RemoteSync(slice_.collection, SyncOp.DELETE, entity_id)]
    return _with_items(state, slice_, items, sync)


# ---------------------------------------------------------------------------
# Deduplication of append-only records
# ---------------------------------------------------------------------------


def _dedup_key(record: Activity | Notification) -> tuple[str, str]:
    text = record.description if isinstance(record, Activity) else record.message
    return text, record.user_id


def is_duplicate(record: Activity | Notification, existing: list) -> bool:
    """True if existing holds the same text by the same user within a second."""
    key = _dedup_key(record)
    for other in existing:
        if _dedup_key(other) != key:
            continue
        if abs(other.created_at - record.created_at) <= DEDUP_WINDOW:
            return True
    return False


def _dedupe(records: list) -> list:
    kept: list = []
    for record in records:
        if not is_duplicate(record, kept):
            kept.append(record)
    return kept


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------

_HANDLERS: dict[type, Callable[[AppState, Any], Result]] = {}


def _handles(action_type: type):
    def register(fn: Callable[[AppState, Any], Result]):
        _HANDLERS[action_type] = fn
        return fn
    return register


def reduce(state: AppState, action: a.Action) -> Result:
    """Apply one action. Returns (new_state, effects); never mutates state."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown action: {type(action).__name__}")
    return handler(state, action)


def handled_actions() -> frozenset[type]:
    return frozenset(_HANDLERS)


# --- Entity collections ---

_handles(a.SetProjects)(lambda s, act: _set(s, PROJECTS, act.projects))
_handles(a.AddProject)(lambda s, act: _add(s, PROJECTS, act.project))
_handles(a.UpdateProject)(lambda s, act: _update(s, PROJECTS, act.project))
_handles(a.DeleteProject)(lambda s, act: _delete(s, PROJECTS, act.project_id))

_handles(a.SetTasks)(lambda s, act: _set(s, TASKS, act.tasks))
_handles(a.AddTask)(lambda s, act: _add(s, TASKS, act.task))
_handles(a.UpdateTask)(lambda s, act: _update(s, TASKS, act.task))
_handles(a.DeleteTask)(lambda s, act: _delete(s, TASKS, act.task_id))

_handles(a.SetCustomers)(lambda s, act: _set(s, CUSTOMERS, act.customers))
_handles(a.AddCustomer)(lambda s, act: _add(s, CUSTOMERS, act.customer, front=True))
_handles(a.UpdateCustomer)(lambda s, act: _update(s, CUSTOMERS, act.customer))
_handles(a.DeleteCustomer)(lambda s, act: _delete(s, CUSTOMERS, act.customer_id))

_handles(a.SetTimeEntries)(lambda s, act: _set(s, TIME_ENTRIES, act.time_entries))
_handles(a.AddTimeEntry)(lambda s, act: _add(s, TIME_ENTRIES, act.time_entry, front=True))
_handles(a.UpdateTimeEntry)(lambda s, act: _update(s, TIME_ENTRIES, act.time_entry))
_handles(a.DeleteTimeEntry)(lambda s, act: _delete(s, TIME_ENTRIES, act.time_entry_id))

_handles(a.SetIncomes)(lambda s, act: _set(s, INCOMES, act.incomes))
_handles(a.AddIncome)(lambda s, act: _add(s, INCOMES, act.income, front=True))
_handles(a.UpdateIncome)(lambda s, act: _update(s, INCOMES, act.income))
_handles(a.DeleteIncome)(lambda s, act: _delete(s, INCOMES, act.income_id))


# --- Notifications & activities ---

@_handles(a.SetNotifications)
def _set_notifications(state: AppState, action: a.SetNotifications) -> Result:
    return _set(state, NOTIFICATIONS, _dedupe(list(action.notifications)))


@_handles(a.AddNotification)
def _add_notification(state: AppState, action: a.AddNotification) -> Result:
    if is_duplicate(action.notification, state.notifications):
        logger.debug("Dropping duplicate notification %s", action.notification.id)
        return state, []
    return _add(state, NOTIFICATIONS, action.notification, front=True)


@_handles(a.MarkNotificationRead)
def _mark_read(state: AppState, action: a.MarkNotificationRead) -> Result:
    target = next((n for n in state.notifications if n.id == action.notification_id), None)
    if target is None or target.read:
        return state, []
    updated = target.model_copy(update={"read": True})
    items = [updated if n.id == target.id else n for n in state.notifications]
    sync = [RemoteSync(NOTIFICATIONS.collection, SyncOp.UPDATE, target.id, {"read": True})]
    return _with_items(state, NOTIFICATIONS, items, sync)


@_handles(a.SetActivities)
def _set_activities(state: AppState, action: a.SetActivities) -> Result:
    return _set(state, ACTIVITIES, _dedupe(list(action.activities)))


@_handles(a.AddActivity)
def _add_activity(state: AppState, action: a.AddActivity) -> Result:
    if is_duplicate(action.activity, state.activities):
        logger.debug("Dropping duplicate activity %s", action.activity.id)
        return state, []
    return _add(state, ACTIVITIES, action.activity, front=True)


# --- Session ---

@_handles(a.SetUser)
def _set_user(state: AppState, action: a.SetUser) -> Result:
    user = action.user
    new_state = dataclasses.replace(state, user=user, is_authenticated=user is not None)
    return new_state, [PersistSlice("user", user.to_json() if user else None)]


@_handles(a.SetAuthenticated)
def _set_authenticated(state: AppState, action: a.SetAuthenticated) -> Result:
    return dataclasses.replace(state, is_authenticated=action.value), []


@_handles(a.Logout)
def _logout(state: AppState, action: a.Logout) -> Result:
    # UI preferences outlive the session; everything else resets
    fresh = AppState(locale=state.locale, theme=state.theme, loading=False)
    effects: list[Effect] = [ClearCache()]
    if action.remote:
        effects.append(RemoteSignOut())
    return fresh, effects


# --- Preferences & UI flags ---

@_handles(a.SetLocale)
def _set_locale(state: AppState, action: a.SetLocale) -> Result:
    if action.locale not in SUPPORTED_LOCALES:
        logger.warning("Ignoring unsupported locale %r", action.locale)
        return state, []
    return dataclasses.replace(state, locale=action.locale), [PersistSlice("locale", action.locale)]


@_handles(a.SetTheme)
def _set_theme(state: AppState, action: a.SetTheme) -> Result:
    if action.theme not in SUPPORTED_THEMES:
        logger.warning("Ignoring unsupported theme %r", action.theme)
        return state, []
    return dataclasses.replace(state, theme=action.theme), [PersistSlice("theme", action.theme)]


@_handles(a.ToggleTheme)
def _toggle_theme(state: AppState, action: a.ToggleTheme) -> Result:
    theme = "dark" if state.theme == "light" else "light"
    return dataclasses.replace(state, theme=theme), [PersistSlice("theme", theme)]


@_handles(a.SetAccessibility)
def _set_accessibility(state: AppState, action: a.SetAccessibility) -> Result:
    return (
        dataclasses.replace(state, accessibility=action.settings),
        [PersistSlice("accessibilitySettings", action.settings.to_json())],
    )


@_handles(a.SetLoading)
def _set_loading(state: AppState, action: a.SetLoading) -> Result:
    return dataclasses.replace(state, loading=action.value), []


@_handles(a.SetError)
def _set_error(state: AppState, action: a.SetError) -> Result:
    return dataclasses.replace(state, error=action.message), []


# --- Work timer (single slot) ---

@_handles(a.StartTimer)
def _start_timer(state: AppState, action: a.StartTimer) -> Result:
    return (
        dataclasses.replace(state, active_timer=action.timer, timer_elapsed=0),
        [PersistSlice("activeTimer", action.timer.to_json())],
    )


@_handles(a.UpdateTimerDescription)
def _update_timer_description(state: AppState, action: a.UpdateTimerDescription) -> Result:
    if state.active_timer is None:
        return state, []
    timer = state.active_timer.model_copy(update={"description": action.description})
    return dataclasses.replace(state, active_timer=timer), [PersistSlice("activeTimer", timer.to_json())]


@_handles(a.StopTimer)
def _stop_timer(state: AppState, action: a.StopTimer) -> Result:
    if state.active_timer is None:
        return state, []
    return (
        dataclasses.replace(state, active_timer=None, timer_elapsed=0),
        [PersistSlice("activeTimer", None)],
    )


@_handles(a.TimerTick)
def _timer_tick(state: AppState, action: a.TimerTick) -> Result:
    if state.active_timer is None or state.timer_elapsed == action.elapsed_seconds:
        return state, []
    return dataclasses.replace(state, timer_elapsed=action.elapsed_seconds), []


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

Listener = Callable[[AppState], None]


class Store:
    """Holds the current AppState and applies actions to it.

    Constructed once at startup and passed to whatever needs it.
    """

    def __init__(
        self,
        cache: DurableCache,
        sync: SyncQueue | None = None,
        initial: AppState | None = None,
    ) -> None:
        if initial is None:
            from projectflow.config import settings
            initial = AppState(locale=settings.DEFAULT_LOCALE, theme=settings.DEFAULT_THEME)
        self._state = initial
        self._cache = cache
        self._sync = sync
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def sync(self) -> SyncQueue | None:
        return self._sync

    def dispatch(self, action: a.Action) -> list[SyncJob]:
        """Apply action; return the background jobs it queued.

        Cache writes have completed when this returns. Remote calls have not.
        """
        new_state, effects = reduce(self._state, action)
        if new_state is self._state and not effects:
            return []
        self._state = new_state
        logger.debug("Dispatched %s", type(action).__name__)

        remote: list[Effect] = []
        for effect in effects:
            if isinstance(effect, PersistSlice):
                if effect.value is None:
                    self._cache.delete(effect.key)
                else:
                    self._cache.set(effect.key, effect.value)
            elif isinstance(effect, ClearCache):
                self._cache.clear()
            else:
                remote.append(effect)

        jobs = self._enqueue(remote)
        self._notify()
        return jobs

    def _enqueue(self, effects: list[Effect]) -> list[SyncJob]:
        if self._sync is None:
            return []
        jobs: list[SyncJob] = []
        for effect in effects:
            if isinstance(effect, RemoteSync):
                jobs.append(self._sync.enqueue(
                    effect.collection, effect.op, effect.entity_id, effect.payload,
                ))
            elif isinstance(effect, RemoteSignOut):
                jobs.append(self._sync.enqueue_sign_out())
        return jobs

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)
