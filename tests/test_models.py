"""Tests for projectflow.data.models — pydantic entity models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from projectflow.data.models import (
    BillingModel,
    Customer,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    User,
    UserRole,
)


class TestAliases:
    def test_accepts_camel_case_payload(self):
        task = Task.model_validate({
            "id": "t1", "title": "Write docs", "projectId": "p1",
            "status": "in-progress", "dueDate": "2024-03-01T00:00:00Z",
        })
        assert task.project_id == "p1"
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.due_date == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_accepts_snake_case_names(self):
        project = Project(id="p1", title="Site", customer_id="c1")
        assert project.customer_id == "c1"

    def test_to_json_uses_api_field_names(self):
        user = User(id="1", name="Ajay", is_online=True)
        data = user.to_json()
        assert data["isOnline"] is True
        assert "is_online" not in data

    def test_unknown_fields_ignored(self):
        user = User.model_validate({"id": "1", "passwordHash": "x"})
        assert not hasattr(user, "passwordHash")


class TestDefaults:
    def test_task_lists_default_empty(self):
        task = Task(id="t1", title="x", project_id="p1")
        assert task.comments == []
        assert task.attachments == []
        assert task.tags == []
        assert task.assigned_to == []

    def test_customer_defaults(self):
        customer = Customer(id="c1", name="Acme")
        assert customer.billing_model == BillingModel.HOURLY
        assert customer.hourly_rate == 0.0

    def test_enum_values_match_api(self):
        assert ProjectStatus.ON_HOLD.value == "on-hold"
        assert UserRole.CONTRIBUTOR.value == "contributor"


class TestValidation:
    def test_task_requires_project(self):
        with pytest.raises(ValidationError):
            Task(id="t1", title="x")

    def test_bad_status_rejected(self):
        with pytest.raises(ValidationError):
            Project(id="p1", title="x", status="archived")
