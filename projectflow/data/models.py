"""
ProjectFlow — Data Models.

Canonical shapes of every entity held in application state. The same models
travel over the wire and into the durable cache, so they serialize with the
REST API's camelCase field names while Python code uses snake_case.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Entity(BaseModel):
    """Base for every wire/cache model: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("*", mode="after")
    @classmethod
    def assume_utc(cls, v: Any) -> Any:
        # Offset-less and date-only inputs are UTC
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_json(self) -> dict:
        """Dump with the API's field names and JSON-safe values."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    CONTRIBUTOR = "contributor"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    PAUSED = "paused"
    CHURNED = "churned"


class BillingModel(str, Enum):
    HOURLY = "hourly"
    RETAINER = "retainer"
    PROJECT = "project"


class NotificationType(str, Enum):
    TASK_ASSIGNED = "task_assigned"
    DEADLINE_APPROACHING = "deadline_approaching"
    TASK_COMPLETED = "task_completed"
    PROJECT_UPDATED = "project_updated"
    EVENT_REMINDER = "event_reminder"
    EVENT_STARTING = "event_starting"


class ActivityType(str, Enum):
    PROJECT_CREATED = "project_created"
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    MEMBER_ADDED = "member_added"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class User(Entity):
    """The signed-in person (or a project member/assignee reference)."""

    id: str
    name: str = ""
    email: str = ""
    role: UserRole = UserRole.CONTRIBUTOR
    avatar: str | None = None
    is_online: bool = False


class Comment(Entity):
    id: str
    content: str = ""
    user_id: str = ""
    user: User | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Attachment(Entity):
    id: str
    filename: str = ""
    url: str = ""
    size: int = 0
    type: str = ""
    uploaded_by: str = ""
    uploaded_at: datetime = Field(default_factory=utcnow)


class Project(Entity):
    """A body of work for a customer. `progress` is derived from its tasks."""

    id: str
    title: str
    description: str = ""
    start_date: datetime = Field(default_factory=utcnow)
    end_date: datetime | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    progress: int = 0                 # 0-100, recomputed from task completion
    priority: Priority = Priority.MEDIUM
    members: list[User] = Field(default_factory=list)
    created_by: str = ""
    customer_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Task(Entity):
    """A unit of work on the Kanban board."""

    id: str
    title: str
    description: str = ""
    project_id: str
    assigned_to: list[User] = Field(default_factory=list)
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    due_date: datetime = Field(default_factory=utcnow)
    created_by: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    comments: list[Comment] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class Customer(Entity):
    """A CRM record. Rate fields are interpreted according to billing_model."""

    id: str
    name: str
    status: CustomerStatus = CustomerStatus.ACTIVE
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    country: str = ""
    tax_id: str = ""
    join_date: datetime = Field(default_factory=utcnow)
    industry: str | None = None
    payment_method: str = "bank-transfer"
    billing_cycle: str = "monthly"
    billing_model: BillingModel = BillingModel.HOURLY
    currency: str = "ILS"
    hourly_rate: float = 0.0
    monthly_retainer: float = 0.0
    project_fee: float = 0.0
    annual_fee: float = 0.0
    hours_per_month: float = 0.0
    customer_score: float = 0.0
    notes: str | None = None
    referral_source: str | None = None   # free text, or another customer's id
    user_id: str = ""
    tags: list[str] = Field(default_factory=list)


class TimeEntry(Entity):
    """Logged work. duration (seconds) and income are derived from the times and rate."""

    id: str
    customer_id: str
    project_id: str
    task_id: str | None = None
    description: str = ""
    start_time: datetime
    end_time: datetime
    duration: int = 0
    hourly_rate: float = 0.0
    income: float = 0.0
    user_id: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Income(Entity):
    """An invoice-like payment record. vat_amount and final_amount are derived."""

    id: str
    customer_id: str
    customer_name: str = ""
    income_date: datetime = Field(default_factory=utcnow)
    invoice_number: str | None = None
    vat_rate: float = 0.0             # e.g. 0.18 for 18%
    amount_before_vat: float = 0.0
    vat_amount: float = 0.0
    final_amount: float = 0.0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Notification(Entity):
    id: str
    type: NotificationType = NotificationType.PROJECT_UPDATED
    title: str = ""
    message: str = ""
    user_id: str = ""
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    related_id: str | None = None


class Activity(Entity):
    """Append-only audit record of something a user did."""

    id: str
    type: ActivityType = ActivityType.TASK_UPDATED
    description: str = ""
    user_id: str = ""
    user: User | None = None
    project_id: str | None = None
    task_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class ActiveTimer(Entity):
    """The single running work timer of a user session."""

    id: str
    customer_id: str
    project_id: str
    task_id: str | None = None
    description: str = ""
    start_time: datetime = Field(default_factory=utcnow)
    is_running: bool = True
    user_id: str = ""


class AccessibilitySettings(Entity):
    text_size: int = 100              # percent
    high_contrast: bool = False
    large_cursor: bool = False


class Subscription(Entity):
    """A user's plan as reported by the subscriptions endpoint."""

    id: str = ""
    user_id: str = ""
    plan_type: str = "trial"          # monthly | annual | free | trial
    status: str = "trial"             # trial | active | cancelled | expired | suspended | free
    start_date: datetime | None = None
    end_date: datetime | None = None
    trial_end_date: datetime | None = None
    paypal_subscription_id: str | None = None
    price: float = 0.0
    currency: str = "ILS"
    is_free_access: bool = False      # granted manually by an admin
    is_trial_coupon: bool = False     # trial started from a coupon code
