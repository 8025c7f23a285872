"""
ProjectFlow — Store Actions.

One frozen dataclass per kind of state mutation. `Action` is the closed union
of all of them; `store.reduce` has a handler for every member.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from projectflow.data.models import (
    AccessibilitySettings,
    ActiveTimer,
    Activity,
    Customer,
    Income,
    Notification,
    Project,
    Task,
    TimeEntry,
    User,
)


# --- Projects ---

@dataclass(frozen=True)
class SetProjects:
    projects: list[Project]


@dataclass(frozen=True)
class AddProject:
    project: Project


@dataclass(frozen=True)
class UpdateProject:
    project: Project


@dataclass(frozen=True)
class DeleteProject:
    project_id: str


# --- Tasks ---

@dataclass(frozen=True)
class SetTasks:
    tasks: list[Task]


@dataclass(frozen=True)
class AddTask:
    task: Task


@dataclass(frozen=True)
class UpdateTask:
    task: Task


@dataclass(frozen=True)
class DeleteTask:
    task_id: str


# --- Customers ---

@dataclass(frozen=True)
class SetCustomers:
    customers: list[Customer]


@dataclass(frozen=True)
class AddCustomer:
    customer: Customer


@dataclass(frozen=True)
class UpdateCustomer:
    customer: Customer


@dataclass(frozen=True)
class DeleteCustomer:
    customer_id: str


# --- Time entries ---

@dataclass(frozen=True)
class SetTimeEntries:
    time_entries: list[TimeEntry]


@dataclass(frozen=True)
class AddTimeEntry:
    time_entry: TimeEntry


@dataclass(frozen=True)
class UpdateTimeEntry:
    time_entry: TimeEntry


@dataclass(frozen=True)
class DeleteTimeEntry:
    time_entry_id: str


# --- Incomes ---

@dataclass(frozen=True)
class SetIncomes:
    incomes: list[Income]


@dataclass(frozen=True)
class AddIncome:
    income: Income


@dataclass(frozen=True)
class UpdateIncome:
    income: Income


@dataclass(frozen=True)
class DeleteIncome:
    income_id: str


# --- Notifications & activities (append-only) ---

@dataclass(frozen=True)
class SetNotifications:
    notifications: list[Notification]


@dataclass(frozen=True)
class AddNotification:
    notification: Notification


@dataclass(frozen=True)
class MarkNotificationRead:
    notification_id: str


@dataclass(frozen=True)
class SetActivities:
    activities: list[Activity]


@dataclass(frozen=True)
class AddActivity:
    activity: Activity


# --- Session ---

@dataclass(frozen=True)
class SetUser:
    user: User | None


@dataclass(frozen=True)
class SetAuthenticated:
    value: bool


@dataclass(frozen=True)
class Logout:
    remote: bool = True    # False when the session provider already signed out


# --- Preferences & UI flags ---

@dataclass(frozen=True)
class SetLocale:
    locale: str


@dataclass(frozen=True)
class SetTheme:
    theme: str


@dataclass(frozen=True)
class ToggleTheme:
    pass


@dataclass(frozen=True)
class SetAccessibility:
    settings: AccessibilitySettings


@dataclass(frozen=True)
class SetLoading:
    value: bool


@dataclass(frozen=True)
class SetError:
    message: str | None


# --- Work timer ---

@dataclass(frozen=True)
class StartTimer:
    timer: ActiveTimer


@dataclass(frozen=True)
class UpdateTimerDescription:
    description: str


@dataclass(frozen=True)
class StopTimer:
    pass


@dataclass(frozen=True)
class TimerTick:
    elapsed_seconds: int


Action = Union[
    SetProjects, AddProject, UpdateProject, DeleteProject,
    SetTasks, AddTask, UpdateTask, DeleteTask,
    SetCustomers, AddCustomer, UpdateCustomer, DeleteCustomer,
    SetTimeEntries, AddTimeEntry, UpdateTimeEntry, DeleteTimeEntry,
    SetIncomes, AddIncome, UpdateIncome, DeleteIncome,
    SetNotifications, AddNotification, MarkNotificationRead,
    SetActivities, AddActivity,
    SetUser, SetAuthenticated, Logout,
    SetLocale, SetTheme, ToggleTheme, SetAccessibility, SetLoading, SetError,
    StartTimer, UpdateTimerDescription, StopTimer, TimerTick,
]
