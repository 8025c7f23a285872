"""Tests for projectflow.core.validation."""

from datetime import datetime, timedelta, timezone

import pytest

from projectflow.core.validation import (
    ValidationError,
    validate_customer,
    validate_income,
    validate_project,
    validate_task,
    validate_time_entry,
)
from projectflow.data.models import Customer, Income, Project, Task, TimeEntry

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _field(fn, *args):
    with pytest.raises(ValidationError) as exc_info:
        fn(*args)
    return exc_info.value.field


def test_project_rules():
    validate_project(Project(id="p", title="Site", start_date=T0, end_date=T0 + timedelta(days=1)))
    assert _field(validate_project, Project(id="p", title="")) == "title"
    assert _field(validate_project, Project(
        id="p", title="Site", start_date=T0, end_date=T0 - timedelta(days=1),
    )) == "end_date"
    assert _field(validate_project, Project(id="p", title="Site", progress=150)) == "progress"


def test_task_rules():
    task = Task(id="t", title="Build", project_id="p1")
    validate_task(task)
    validate_task(task, {"p1"})
    assert _field(validate_task, task, {"p2"}) == "project_id"
    assert _field(validate_task, Task(id="t", title=" ", project_id="p1")) == "title"


def test_customer_rules():
    validate_customer(Customer(id="c", name="Acme", contact_email="a@b.co"))
    assert _field(validate_customer, Customer(id="c", name="")) == "name"
    assert _field(validate_customer, Customer(id="c", name="A", contact_email="nope")) == "contact_email"
    assert _field(validate_customer, Customer(id="c", name="A", hourly_rate=-1)) == "hourly_rate"


def test_income_rules():
    validate_income(Income(id="i", customer_id="c", amount_before_vat=10, vat_rate=0.18))
    assert _field(validate_income, Income(id="i", customer_id="", amount_before_vat=10)) == "customer_id"
    assert _field(validate_income, Income(id="i", customer_id="c", amount_before_vat=-5)) == "amount_before_vat"
    assert _field(validate_income, Income(
        id="i", customer_id="c", amount_before_vat=10, vat_rate=18,
    )) == "vat_rate"


def test_time_entry_rules():
    def entry(**kwargs):
        fields = dict(id="e", customer_id="c", project_id="p", start_time=T0,
                      end_time=T0 + timedelta(hours=1), hourly_rate=100)
        fields.update(kwargs)
        return TimeEntry(**fields)

    validate_time_entry(entry())
    assert _field(validate_time_entry, entry(end_time=T0 - timedelta(minutes=1))) == "end_time"
    assert _field(validate_time_entry, entry(hourly_rate=-1)) == "hourly_rate"
    assert _field(validate_time_entry, entry(customer_id="")) == "customer_id"


def test_error_is_a_value_error():
    assert issubclass(ValidationError, ValueError)
    err = ValidationError("Bad", "x")
    assert str(err) == "Bad"
