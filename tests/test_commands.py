"""Tests for projectflow.core.commands — validated, double-submit-safe mutations."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from projectflow.core import actions as a
from projectflow.core.commands import CommandService, CommandStatus
from projectflow.core.store import AppState, Store
from projectflow.core.sync_queue import SyncQueue, SyncStatus
from projectflow.data.defaults import default_projects, default_tasks
from projectflow.data.models import (
    Customer,
    Notification,
    Project,
    TaskStatus,
    User,
)

T0 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def commands(store):
    store.dispatch(a.SetUser(User(id="u1", name="Ajay")))
    return CommandService(store, clock=lambda: T0)


# ---------------------------------------------------------------------------
# Projects and tasks
# ---------------------------------------------------------------------------


class TestProjects:
    @pytest.mark.asyncio
    async def test_create_project_syncs_and_logs_activity(self, commands, store, remote):
        result = await commands.create_project(title="Website")

        assert result.ok
        assert result.entity.id.startswith("project-")
        assert result.entity.created_by == "u1"
        assert result.sync_status == SyncStatus.SYNCED
        assert store.state.projects == [result.entity]
        assert store.state.activities[0].description == 'Created new project "Website"'
        remote.collection("projects").create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_validation_failure_dispatches_nothing(self, commands, store):
        result = await commands.create_project(title="  ")

        assert result.status == CommandStatus.ERROR
        assert result.message == "Project title is required"
        assert result.field == "title"
        assert store.state.projects == []
        assert store.sync.jobs == []

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, commands):
        result = await commands.create_project(
            title="Site", start_date=T0, end_date=T0 - timedelta(days=1),
        )
        assert result.status == CommandStatus.ERROR
        assert result.field == "end_date"

    @pytest.mark.asyncio
    async def test_date_only_end_date_accepted(self, commands):
        result = await commands.create_project(title="Site", end_date="2099-12-31")
        assert result.ok
        assert result.entity.end_date == datetime(2099, 12, 31, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_date_only_end_date_before_start_rejected(self, commands):
        result = await commands.create_project(title="Site", end_date="2024-05-01")
        assert result.status == CommandStatus.ERROR
        assert result.field == "end_date"

    @pytest.mark.asyncio
    async def test_bad_field_type_reported(self, commands):
        result = await commands.create_project(title="Site", status="archived")
        assert result.status == CommandStatus.ERROR
        assert result.field == "status"

    @pytest.mark.asyncio
    async def test_double_submit_ignored(self, commands, store, remote):
        release = asyncio.Event()

        async def slow_create(data):
            await release.wait()
            return data

        remote.collection("projects").create.side_effect = slow_create

        first = asyncio.create_task(commands.create_project(title="Site"))
        for _ in range(5):
            await asyncio.sleep(0)
        second = await commands.create_project(title="Site")
        release.set()

        assert second.status == CommandStatus.IGNORED
        assert (await first).ok
        assert len(store.state.projects) == 1

    @pytest.mark.asyncio
    async def test_remote_failure_reported_but_kept(self, cache, failing_remote, session):
        store = Store(cache, SyncQueue(failing_remote, session), initial=AppState(loading=False))
        commands = CommandService(store, clock=lambda: T0)

        result = await commands.create_customer(name="Acme")

        assert result.ok
        assert result.sync_status == SyncStatus.FAILED
        assert [c.name for c in store.state.customers] == ["Acme"]

    @pytest.mark.asyncio
    async def test_delete_unknown_project(self, commands):
        result = await commands.delete_project("nope")
        assert result.status == CommandStatus.ERROR

    @pytest.mark.asyncio
    async def test_update_and_delete_project(self, commands, store):
        store.dispatch(a.SetProjects([Project(id="p1", title="Site")]))
        project = store.state.projects[0]

        updated = await commands.update_project(project.model_copy(update={"title": "Shop"}))
        assert updated.ok
        assert store.state.projects[0].title == "Shop"
        assert store.state.projects[0].updated_at == T0

        deleted = await commands.delete_project("p1")
        assert deleted.ok
        assert store.state.projects == []


class TestTasks:
    @pytest.fixture
    def seeded(self, commands, store):
        store.dispatch(a.SetTasks(default_tasks()))
        store.dispatch(a.SetProjects(default_projects()))
        return commands

    @pytest.mark.asyncio
    async def test_create_task_requires_existing_project(self, seeded):
        result = await seeded.create_task(title="QA", project_id="missing")
        assert result.status == CommandStatus.ERROR
        assert result.field == "project_id"

    @pytest.mark.asyncio
    async def test_create_task_updates_progress(self, seeded, store):
        result = await seeded.create_task(title="QA", project_id="1")
        assert result.ok
        assert result.entity.id.startswith("task-")
        assert next(p for p in store.state.projects if p.id == "1").progress == 25
        assert store.sync.status_of("projects", "1") == SyncStatus.SYNCED

    @pytest.mark.asyncio
    async def test_move_task_between_columns(self, seeded, store):
        result = await seeded.set_task_status("3", TaskStatus.COMPLETED)
        assert result.ok
        assert next(p for p in store.state.projects if p.id == "1").progress == 67
        assert store.state.activities[0].description.startswith("Updated task")

    @pytest.mark.asyncio
    async def test_move_to_same_column_ignored(self, seeded):
        result = await seeded.set_task_status("1", TaskStatus.COMPLETED)
        assert result.status == CommandStatus.IGNORED

    @pytest.mark.asyncio
    async def test_move_unknown_task(self, seeded):
        result = await seeded.set_task_status("nope", TaskStatus.COMPLETED)
        assert result.status == CommandStatus.ERROR

    @pytest.mark.asyncio
    async def test_delete_task(self, seeded, store):
        result = await seeded.delete_task("3")
        assert result.ok
        assert "3" not in {t.id for t in store.state.tasks}


# ---------------------------------------------------------------------------
# Customers, incomes, time entries
# ---------------------------------------------------------------------------


class TestBilling:
    @pytest.mark.asyncio
    async def test_invalid_customer_email(self, commands):
        result = await commands.create_customer(name="Acme", contact_email="not-an-email")
        assert result.status == CommandStatus.ERROR
        assert result.field == "contact_email"

    @pytest.mark.asyncio
    async def test_create_income_fills_name_and_totals(self, commands, store):
        store.dispatch(a.SetCustomers([Customer(id="cust-1", name="Amir")]))

        result = await commands.create_income(
            customer_id="cust-1", amount_before_vat=100, vat_rate=0.18,
        )

        assert result.ok
        income = store.state.incomes[0]
        assert income.customer_name == "Amir"
        assert income.final_amount == pytest.approx(118)

    @pytest.mark.asyncio
    async def test_zero_income_rejected(self, commands):
        result = await commands.create_income(customer_id="cust-1", amount_before_vat=0)
        assert result.message == "Amount must be greater than zero"

    @pytest.mark.asyncio
    async def test_time_entry_interval_must_be_positive(self, commands):
        result = await commands.create_time_entry(
            customer_id="cust-1", project_id="1",
            start_time=T0, end_time=T0, hourly_rate=300,
        )
        assert result.status == CommandStatus.ERROR
        assert result.field == "end_time"

    @pytest.mark.asyncio
    async def test_create_time_entry(self, commands, store):
        result = await commands.create_time_entry(
            customer_id="cust-1", project_id="1",
            start_time=T0, end_time=T0 + timedelta(hours=2), hourly_rate=300,
        )
        assert result.ok
        assert store.state.time_entries[0].income == pytest.approx(600)
        assert store.state.time_entries[0].user_id == "u1"

    @pytest.mark.asyncio
    async def test_time_entry_with_mixed_offsets(self, commands, store):
        result = await commands.create_time_entry(
            customer_id="cust-1", project_id="1",
            start_time="2024-01-01T09:00:00Z", end_time="2024-01-01T12:30:00",
            hourly_rate=300,
        )
        assert result.ok
        assert result.entity.end_time.tzinfo is not None
        assert result.entity.duration == 3.5 * 3600

    @pytest.mark.asyncio
    async def test_naive_end_before_start_is_a_validation_error(self, commands):
        result = await commands.create_time_entry(
            customer_id="cust-1", project_id="1",
            start_time="2024-01-01T09:00:00Z", end_time="2024-01-01T08:00:00",
            hourly_rate=300,
        )
        assert result.status == CommandStatus.ERROR
        assert result.field == "end_time"


# ---------------------------------------------------------------------------
# Activities and notifications
# ---------------------------------------------------------------------------


class TestActivityLog:
    @pytest.mark.asyncio
    async def test_duplicate_activity_ignored(self, commands, store):
        from projectflow.data.models import ActivityType

        first = await commands.log_activity(ActivityType.TASK_UPDATED, "Did it")
        second = await commands.log_activity(ActivityType.TASK_UPDATED, "Did it")

        assert first.ok
        assert first.sync_status == SyncStatus.PENDING
        assert second.status == CommandStatus.IGNORED
        assert len(store.state.activities) == 1

    @pytest.mark.asyncio
    async def test_mark_notification_read(self, commands, store):
        store.dispatch(a.SetNotifications([Notification(id="n1", message="hi", user_id="u1")]))
        result = await commands.mark_notification_read("n1")
        assert result.ok
        assert store.state.notifications[0].read is True

        again = await commands.mark_notification_read("n1")
        assert again.status == CommandStatus.IGNORED
        missing = await commands.mark_notification_read("nope")
        assert missing.status == CommandStatus.ERROR
