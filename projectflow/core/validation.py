"""Local validation of entities before they are dispatched.

A failure raises ValidationError carrying a message fit to show next to the
form field; nothing reaches the store or the REST API.
"""

from __future__ import annotations

import re

from projectflow.data.models import Customer, Income, Project, Task, TimeEntry

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.field = field


def _require(value: str | None, field: str, label: str) -> None:
    if not (value or "").strip():
        raise ValidationError(f"{label} is required", field)


def _non_negative(value: float, field: str, label: str) -> None:
    if value < 0:
        raise ValidationError(f"{label} cannot be negative", field)


def validate_project(project: Project) -> None:
    _require(project.title, "title", "Project title")
    if project.end_date is not None and project.end_date < project.start_date:
        raise ValidationError("End date must be after the start date", "end_date")
    if not 0 <= project.progress <= 100:
        raise ValidationError("Progress must be between 0 and 100", "progress")


def validate_task(task: Task, project_ids: set[str] | None = None) -> None:
    _require(task.title, "title", "Task title")
    _require(task.project_id, "project_id", "Project")
    if project_ids is not None and task.project_id not in project_ids:
        raise ValidationError("Task must belong to an existing project", "project_id")


def validate_customer(customer: Customer) -> None:
    _require(customer.name, "name", "Customer name")
    if customer.contact_email and not _EMAIL_RE.match(customer.contact_email):
        raise ValidationError("Invalid email address", "contact_email")
    for field in ("hourly_rate", "monthly_retainer", "project_fee", "annual_fee", "hours_per_month"):
        _non_negative(getattr(customer, field), field, field.replace("_", " ").capitalize())


def validate_income(income: Income) -> None:
    _require(income.customer_id, "customer_id", "Customer")
    if income.amount_before_vat <= 0:
        raise ValidationError("Amount must be greater than zero", "amount_before_vat")
    if not 0 <= income.vat_rate <= 1:
        raise ValidationError("VAT rate must be between 0 and 1", "vat_rate")


def validate_time_entry(entry: TimeEntry) -> None:
    _require(entry.customer_id, "customer_id", "Customer")
    _require(entry.project_id, "project_id", "Project")
    if entry.end_time <= entry.start_time:
        raise ValidationError("End time must be after the start time", "end_time")
    _non_negative(entry.hourly_rate, "hourly_rate", "Hourly rate")
