"""
ProjectFlow — Normalization Layer.

Repairs loosely-typed records (from the REST API or the durable cache) into
canonical models before they enter application state:

- date-like fields become timezone-aware UTC datetimes; an unparsable value
  is replaced with "now" and logged, never left invalid,
- optional list fields (comments, attachments, tags, assignees, members)
  default to empty lists,
- server join-table shapes like ``members: [{"user": {...}}]`` are unwrapped,
- derived money/time fields are recomputed.

Every function is pure and idempotent: normalizing already-normalized output
returns an equal list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, TypeVar

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from projectflow.core.billing import with_income_totals, with_time_entry_totals
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

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=Entity)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # JavaScript timestamps are milliseconds since the epoch
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return _parse_datetime(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def coerce_datetime(value: Any, field_name: str = "date") -> datetime:
    """Return a valid UTC datetime for value, substituting now when unparsable."""
    parsed = _parse_datetime(value)
    if parsed is None:
        logger.warning("Invalid %s %r replaced with current time", field_name, value)
        return _utcnow()
    return parsed


def coerce_optional_datetime(value: Any, field_name: str = "date") -> datetime | None:
    """Like coerce_datetime, but an absent value stays None."""
    if value is None or value == "":
        return None
    return coerce_datetime(value, field_name)


# ---------------------------------------------------------------------------
# Record repair
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _RecordShape:
    """Which fields of a model need repairing."""

    dates: tuple[str, ...] = ()
    optional_dates: tuple[str, ...] = ()
    lists: tuple[str, ...] = ()
    users: tuple[str, ...] = ()        # list fields holding User references
    nested: dict[str, Callable[[list], list]] = field(default_factory=dict)


def _to_dict(item: Any) -> dict | None:
    if isinstance(item, Entity):
        return item.model_dump(by_alias=True)
    if isinstance(item, dict):
        return dict(item)
    return None


def _pop_field(raw: dict, name: str) -> tuple[bool, Any]:
    """Read a field by its camelCase alias or snake_case name, removing both."""
    alias = to_camel(name)
    present = alias in raw or name in raw
    value = raw.pop(alias, None)
    snake = raw.pop(name, None)
    return present, value if value is not None else snake


def _unwrap_users(items: Iterable[Any]) -> list:
    """Accept plain users or join rows shaped like {"user": {...}}."""
    result = []
    for item in items:
        if isinstance(item, dict) and isinstance(item.get("user"), dict) and "id" not in item:
            item = item["user"]
        result.append(item)
    return result


def _repair(raw: dict, shape: _RecordShape) -> dict:
    for name in shape.dates:
        _, value = _pop_field(raw, name)
        raw[name] = coerce_datetime(value, name)
    for name in shape.optional_dates:
        _, value = _pop_field(raw, name)
        raw[name] = coerce_optional_datetime(value, name)
    for name in shape.lists:
        _, value = _pop_field(raw, name)
        raw[name] = list(value) if isinstance(value, (list, tuple)) else []
    for name in shape.users:
        raw[name] = _unwrap_users(raw.get(name, []))
    for name, fix in shape.nested.items():
        raw[name] = fix(raw.get(name, []))
    return raw


def _normalize(items: Iterable[Any] | None, model: type[M], shape: _RecordShape) -> list[M]:
    result: list[M] = []
    for item in items or []:
        raw = _to_dict(item)
        if raw is None:
            logger.warning("Dropping non-object %s record: %r", model.__name__, item)
            continue
        try:
            result.append(model.model_validate(_repair(raw, shape)))
        except ValidationError as exc:
            logger.warning(
                "Dropping invalid %s record %r: %s",
                model.__name__, raw.get("id"), exc.errors()[0].get("msg", exc),
            )
    return result


def _fix_comments(items: list) -> list:
    return [_repair(d, _COMMENT) for d in map(_to_dict, items or []) if d is not None]


def _fix_attachments(items: list) -> list:
    return [_repair(d, _ATTACHMENT) for d in map(_to_dict, items or []) if d is not None]


_COMMENT = _RecordShape(dates=("created_at",))
_ATTACHMENT = _RecordShape(dates=("uploaded_at",))
_USER = _RecordShape()
_PROJECT = _RecordShape(
    dates=("start_date", "created_at", "updated_at"),
    optional_dates=("end_date",),
    lists=("members",),
    users=("members",),
)
_TASK = _RecordShape(
    dates=("due_date", "created_at", "updated_at"),
    lists=("assigned_to", "comments", "attachments", "tags"),
    users=("assigned_to",),
    nested={"comments": _fix_comments, "attachments": _fix_attachments},
)
_CUSTOMER = _RecordShape(dates=("join_date",), lists=("tags",))
_TIME_ENTRY = _RecordShape(dates=("start_time", "end_time", "created_at", "updated_at"))
_INCOME = _RecordShape(dates=("income_date", "created_at", "updated_at"))
_NOTIFICATION = _RecordShape(dates=("created_at",))
_ACTIVITY = _RecordShape(dates=("created_at",))
_TIMER = _RecordShape(dates=("start_time",))


# ---------------------------------------------------------------------------
# Public API: one function per collection
# ---------------------------------------------------------------------------


def normalize_users(users: Iterable[Any] | None) -> list[User]:
    return _normalize(users, User, _USER)


def normalize_user(user: Any) -> User | None:
    found = normalize_users([user]) if user is not None else []
    return found[0] if found else None


def normalize_projects(projects: Iterable[Any] | None) -> list[Project]:
    return _normalize(projects, Project, _PROJECT)


def normalize_tasks(tasks: Iterable[Any] | None) -> list[Task]:
    raw_tasks = []
    for task in tasks or []:
        # The API returns assignees as join rows under "assignees"
        if isinstance(task, dict) and "assignees" in task and not task.get("assignedTo"):
            task = {**task, "assignedTo": task["assignees"]}
        raw_tasks.append(task)
    return _normalize(raw_tasks, Task, _TASK)


def normalize_customers(customers: Iterable[Any] | None) -> list[Customer]:
    return _normalize(customers, Customer, _CUSTOMER)


def normalize_time_entries(entries: Iterable[Any] | None) -> list[TimeEntry]:
    return [with_time_entry_totals(e) for e in _normalize(entries, TimeEntry, _TIME_ENTRY)]


def normalize_incomes(incomes: Iterable[Any] | None) -> list[Income]:
    return [with_income_totals(i) for i in _normalize(incomes, Income, _INCOME)]


def normalize_notifications(notifications: Iterable[Any] | None) -> list[Notification]:
    return _normalize(notifications, Notification, _NOTIFICATION)


def normalize_activities(activities: Iterable[Any] | None) -> list[Activity]:
    return _normalize(activities, Activity, _ACTIVITY)


def normalize_active_timer(timer: Any) -> ActiveTimer | None:
    found = _normalize([timer], ActiveTimer, _TIMER) if timer is not None else []
    return found[0] if found else None


def normalize_accessibility(value: Any) -> AccessibilitySettings | None:
    if value is None:
        return None
    try:
        return AccessibilitySettings.model_validate(_to_dict(value) or {})
    except ValidationError as exc:
        logger.warning("Ignoring invalid accessibility settings: %s", exc)
        return None


# Snapshot key (cache key / initial-data field) -> normalizer
COLLECTION_NORMALIZERS: dict[str, Callable[[Any], list]] = {
    "projects": normalize_projects,
    "tasks": normalize_tasks,
    "customers": normalize_customers,
    "timeEntries": normalize_time_entries,
    "incomes": normalize_incomes,
    "notifications": normalize_notifications,
    "activities": normalize_activities,
}


def normalize_snapshot(raw: dict[str, Any]) -> dict[str, list]:
    """Normalize every entity collection in a consolidated payload.

    Missing or non-list collections come back as empty lists.
    """
    result: dict[str, list] = {}
    for key, fn in COLLECTION_NORMALIZERS.items():
        value = raw.get(key)
        result[key] = fn(value if isinstance(value, list) else [])
    return result
