"""
ProjectFlow — Command Service.

What a form submit or a Kanban drag does: build the entity (ids,
timestamps, derived totals), validate it, dispatch the optimistic action and
wait for the background sync to report back.

Each command returns a CommandResult instead of raising:
- OK: dispatched; `sync_status` tells whether the REST API accepted it,
- ERROR: validation failed, nothing was dispatched,
- IGNORED: the same command was already in flight (double submit), or the
  store treated it as a no-op (duplicate activity).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Hashable

import pydantic

from projectflow.core import actions as a
from projectflow.core.billing import with_income_totals, with_time_entry_totals
from projectflow.core.sync_queue import SyncStatus
from projectflow.core.validation import (
    ValidationError,
    validate_customer,
    validate_income,
    validate_project,
    validate_task,
    validate_time_entry,
)
from projectflow.data.models import (
    Activity,
    ActivityType,
    Customer,
    Entity,
    Income,
    Project,
    Task,
    TaskStatus,
    TimeEntry,
)

if TYPE_CHECKING:
    from projectflow.core.store import Store
    from projectflow.core.sync_queue import SyncJob

logger = logging.getLogger(__name__)


class CommandStatus(Enum):
    OK = "ok"
    ERROR = "error"
    IGNORED = "ignored"


@dataclass
class CommandResult:
    status: CommandStatus
    message: str = ""
    entity: Entity | None = None
    sync_status: SyncStatus | None = None    # None when nothing was sent remotely
    field: str = ""

    @property
    def ok(self) -> bool:
        return self.status == CommandStatus.OK


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class CommandService:
    """Validated, double-submit-safe mutations on top of the store."""

    def __init__(self, store: Store, clock: Callable[[], datetime] | None = None) -> None:
        self._store = store
        self._clock = clock or _utcnow
        self._in_flight: set[Hashable] = set()

    @property
    def _user_id(self) -> str:
        user = self._store.state.user
        return user.id if user else ""

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _build(self, model: type[Entity], fields: dict[str, Any]) -> Entity:
        try:
            return model.model_validate(fields)
        except pydantic.ValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(p) for p in error.get("loc", ()))
            raise ValidationError(error.get("msg", "Invalid value"), field) from exc

    async def _submit(
        self,
        key: Hashable,
        build: Callable[[], Entity | None],
        action: Callable[[Entity], a.Action],
        wait: bool = True,
    ) -> CommandResult:
        if key in self._in_flight:
            logger.debug("Ignoring duplicate submit %r", key)
            return CommandResult(CommandStatus.IGNORED)

        self._in_flight.add(key)
        try:
            try:
                entity = build()
            except ValidationError as exc:
                logger.info("Validation failed for %r: %s", key, exc.message)
                return CommandResult(CommandStatus.ERROR, exc.message, field=exc.field)

            before = self._store.state
            jobs = self._store.dispatch(action(entity))
            if self._store.state is before:
                return CommandResult(CommandStatus.IGNORED, entity=entity)
            if not jobs:
                return CommandResult(CommandStatus.OK, entity=entity)
            return CommandResult(
                CommandStatus.OK,
                entity=entity,
                sync_status=await self._outcome(jobs) if wait else SyncStatus.PENDING,
            )
        finally:
            self._in_flight.discard(key)

    async def _outcome(self, jobs: list[SyncJob]) -> SyncStatus:
        sync = self._store.sync
        status = SyncStatus.SYNCED
        for job in jobs:
            if await sync.wait_for(job) == SyncStatus.FAILED:
                status = SyncStatus.FAILED
        return status

    def _find(self, items: list, entity_id: str) -> Any | None:
        return next((item for item in items if item.id == entity_id), None)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(self, **fields: Any) -> CommandResult:
        def build() -> Project:
            now = self._clock()
            project = self._build(Project, {
                "start_date": now,
                **fields,
                "id": _new_id("project"),
                "created_by": self._user_id,
                "created_at": now,
                "updated_at": now,
            })
            validate_project(project)
            return project

        result = await self._submit(("create", "projects"), build, a.AddProject)
        if result.ok:
            await self.log_activity(
                ActivityType.PROJECT_CREATED,
                f'Created new project "{result.entity.title}"',
                project_id=result.entity.id,
            )
        return result

    async def update_project(self, project: Project) -> CommandResult:
        def build() -> Project:
            updated = project.model_copy(update={"updated_at": self._clock()})
            validate_project(updated)
            return updated

        return await self._submit(("update", "projects", project.id), build, a.UpdateProject)

    async def delete_project(self, project_id: str) -> CommandResult:
        return await self._delete(
            "projects", project_id, self._store.state.projects, a.DeleteProject,
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def create_task(self, **fields: Any) -> CommandResult:
        def build() -> Task:
            now = self._clock()
            task = self._build(Task, {
                "due_date": now,
                **fields,
                "id": _new_id("task"),
                "created_by": self._user_id,
                "created_at": now,
                "updated_at": now,
            })
            validate_task(task, {p.id for p in self._store.state.projects})
            return task

        result = await self._submit(("create", "tasks"), build, a.AddTask)
        if result.ok:
            await self.log_activity(
                ActivityType.TASK_CREATED,
                f'Created new task "{result.entity.title}"',
                project_id=result.entity.project_id,
                task_id=result.entity.id,
            )
        return result

    async def update_task(self, task: Task) -> CommandResult:
        def build() -> Task:
            updated = task.model_copy(update={"updated_at": self._clock()})
            validate_task(updated)
            return updated

        result = await self._submit(("update", "tasks", task.id), build, a.UpdateTask)
        if result.ok:
            await self.log_activity(
                ActivityType.TASK_UPDATED,
                f'Updated task "{result.entity.title}"',
                project_id=result.entity.project_id,
                task_id=result.entity.id,
            )
        return result

    async def set_task_status(self, task_id: str, status: TaskStatus) -> CommandResult:
        """Move a task to another Kanban column."""
        task = self._find(self._store.state.tasks, task_id)
        if task is None:
            return CommandResult(CommandStatus.ERROR, "Task not found", field="id")
        if task.status == status:
            return CommandResult(CommandStatus.IGNORED, entity=task)
        return await self.update_task(task.model_copy(update={"status": status}))

    async def delete_task(self, task_id: str) -> CommandResult:
        return await self._delete("tasks", task_id, self._store.state.tasks, a.DeleteTask)

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    async def create_customer(self, **fields: Any) -> CommandResult:
        def build() -> Customer:
            customer = self._build(Customer, {
                "join_date": self._clock(),
                **fields,
                "id": _new_id("cust"),
                "user_id": self._user_id,
            })
            validate_customer(customer)
            return customer

        return await self._submit(("create", "customers"), build, a.AddCustomer)

    async def update_customer(self, customer: Customer) -> CommandResult:
        def build() -> Customer:
            validate_customer(customer)
            return customer

        return await self._submit(("update", "customers", customer.id), build, a.UpdateCustomer)

    async def delete_customer(self, customer_id: str) -> CommandResult:
        return await self._delete(
            "customers", customer_id, self._store.state.customers, a.DeleteCustomer,
        )

    # ------------------------------------------------------------------
    # Incomes
    # ------------------------------------------------------------------

    async def create_income(self, **fields: Any) -> CommandResult:
        def build() -> Income:
            now = self._clock()
            customer = self._find(self._store.state.customers, fields.get("customer_id", ""))
            income = self._build(Income, {
                "income_date": now,
                "customer_name": customer.name if customer else "",
                **fields,
                "id": _new_id("income"),
                "created_at": now,
                "updated_at": now,
            })
            validate_income(income)
            return with_income_totals(income)

        return await self._submit(("create", "incomes"), build, a.AddIncome)

    async def update_income(self, income: Income) -> CommandResult:
        def build() -> Income:
            updated = income.model_copy(update={"updated_at": self._clock()})
            validate_income(updated)
            return with_income_totals(updated)

        return await self._submit(("update", "incomes", income.id), build, a.UpdateIncome)

    async def delete_income(self, income_id: str) -> CommandResult:
        return await self._delete("incomes", income_id, self._store.state.incomes, a.DeleteIncome)

    # ------------------------------------------------------------------
    # Time entries
    # ------------------------------------------------------------------

    async def create_time_entry(self, **fields: Any) -> CommandResult:
        def build() -> TimeEntry:
            now = self._clock()
            entry = self._build(TimeEntry, {
                **fields,
                "id": _new_id("time"),
                "user_id": self._user_id,
                "created_at": now,
                "updated_at": now,
            })
            validate_time_entry(entry)
            return with_time_entry_totals(entry)

        return await self._submit(("create", "time-entries"), build, a.AddTimeEntry)

    async def update_time_entry(self, entry: TimeEntry) -> CommandResult:
        def build() -> TimeEntry:
            updated = entry.model_copy(update={"updated_at": self._clock()})
            validate_time_entry(updated)
            return with_time_entry_totals(updated)

        return await self._submit(("update", "time-entries", entry.id), build, a.UpdateTimeEntry)

    async def delete_time_entry(self, entry_id: str) -> CommandResult:
        return await self._delete(
            "time-entries", entry_id, self._store.state.time_entries, a.DeleteTimeEntry,
        )

    # ------------------------------------------------------------------
    # Activity log & notifications
    # ------------------------------------------------------------------

    async def log_activity(
        self,
        activity_type: ActivityType,
        description: str,
        project_id: str | None = None,
        task_id: str | None = None,
    ) -> CommandResult:
        def build() -> Activity:
            return Activity(
                id=_new_id("activity"),
                type=activity_type,
                description=description,
                user_id=self._user_id,
                user=self._store.state.user,
                project_id=project_id,
                task_id=task_id,
                created_at=self._clock(),
            )

        # background sync of the activity log is not awaited
        return await self._submit(("activity", description), build, a.AddActivity, wait=False)

    async def mark_notification_read(self, notification_id: str) -> CommandResult:
        notification = self._find(self._store.state.notifications, notification_id)
        if notification is None:
            return CommandResult(CommandStatus.ERROR, "Notification not found", field="id")
        return await self._submit(
            ("read", notification_id),
            lambda: notification,
            lambda n: a.MarkNotificationRead(n.id),
        )

    # ------------------------------------------------------------------

    async def _delete(
        self,
        collection: str,
        entity_id: str,
        items: list,
        action: Callable[[str], a.Action],
    ) -> CommandResult:
        entity = self._find(items, entity_id)
        if entity is None:
            return CommandResult(CommandStatus.ERROR, "Not found", field="id")
        return await self._submit(
            ("delete", collection, entity_id),
            lambda: entity,
            lambda e: action(e.id),
        )
