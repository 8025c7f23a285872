"""
ProjectFlow — Built-in demo dataset.

Last-resort data source at startup: used when the REST API returns nothing
and the durable cache holds no stored user. Every call returns fresh model
instances, and the records satisfy the same invariants as live data
(progress matches task completion, derived money/time totals are exact).
"""

from __future__ import annotations

from datetime import datetime, timezone

from projectflow.core.billing import (
    customer_hourly_rate,
    with_income_totals,
    with_time_entry_totals,
)
from projectflow.data.models import (
    Activity,
    ActivityType,
    BillingModel,
    Customer,
    CustomerStatus,
    Income,
    Notification,
    NotificationType,
    Priority,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    TimeEntry,
    User,
    UserRole,
)


def _dt(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def default_users() -> list[User]:
    return [
        User(id="1", name="Ajay Dhangar", email="ajay@example.com",
             role=UserRole.ADMIN, is_online=True),
        User(id="2", name="Sarah Johnson", email="sarah@example.com",
             role=UserRole.MANAGER, is_online=True),
        User(id="3", name="Mike Chen", email="mike@example.com",
             role=UserRole.CONTRIBUTOR, is_online=False),
        User(id="4", name="Emily Davis", email="emily@example.com",
             role=UserRole.CONTRIBUTOR, is_online=True),
    ]


def default_user() -> User:
    return default_users()[0]


def default_projects() -> list[Project]:
    users = default_users()
    return [
        Project(
            id="1",
            title="E-commerce Platform",
            description="Building a modern e-commerce platform with React and Node.js",
            start_date=_dt(2024, 1, 15),
            end_date=_dt(2024, 6, 30),
            status=ProjectStatus.IN_PROGRESS,
            progress=33,                  # 1 of 3 tasks completed
            priority=Priority.HIGH,
            members=[users[0], users[1], users[2]],
            created_by="1",
            customer_id="cust-1",
            created_at=_dt(2024, 1, 15),
            updated_at=_dt(2024, 2, 20),
        ),
        Project(
            id="2",
            title="Mobile App Development",
            description="Creating a cross-platform mobile app using React Native",
            start_date=_dt(2024, 2, 1),
            end_date=_dt(2024, 8, 15),
            status=ProjectStatus.IN_PROGRESS,
            progress=0,
            priority=Priority.MEDIUM,
            members=[users[1], users[3]],
            created_by="2",
            customer_id="cust-2",
            created_at=_dt(2024, 2, 1),
            updated_at=_dt(2024, 2, 15),
        ),
        Project(
            id="3",
            title="Data Analytics Dashboard",
            description="Building a comprehensive analytics dashboard for business insights",
            start_date=_dt(2024, 3, 1),
            end_date=_dt(2024, 5, 30),
            status=ProjectStatus.PLANNING,
            progress=0,
            priority=Priority.MEDIUM,
            members=[users[0], users[3]],
            created_by="1",
            customer_id="cust-3",
            created_at=_dt(2024, 3, 1),
            updated_at=_dt(2024, 3, 5),
        ),
    ]


def default_tasks() -> list[Task]:
    users = default_users()
    return [
        Task(
            id="1",
            title="Design Database Schema",
            description="Create comprehensive database schema for the e-commerce platform",
            project_id="1",
            assigned_to=[users[0]],
            status=TaskStatus.COMPLETED,
            priority=Priority.HIGH,
            due_date=_dt(2024, 2, 15),
            created_by="1",
            created_at=_dt(2024, 1, 15),
            updated_at=_dt(2024, 2, 10),
            tags=["database", "backend"],
        ),
        Task(
            id="2",
            title="Implement User Authentication",
            description="Set up JWT-based authentication system",
            project_id="1",
            assigned_to=[users[1]],
            status=TaskStatus.IN_PROGRESS,
            priority=Priority.HIGH,
            due_date=_dt(2024, 3, 1),
            created_by="1",
            created_at=_dt(2024, 2, 1),
            updated_at=_dt(2024, 2, 20),
            tags=["auth", "security"],
        ),
        Task(
            id="3",
            title="Build Product Catalog",
            description="Create product listing and catalog functionality",
            project_id="1",
            assigned_to=[users[2]],
            status=TaskStatus.TODO,
            priority=Priority.MEDIUM,
            due_date=_dt(2024, 3, 15),
            created_by="1",
            created_at=_dt(2024, 2, 15),
            updated_at=_dt(2024, 2, 15),
            tags=["frontend", "ui"],
        ),
        Task(
            id="4",
            title="Setup CI/CD Pipeline",
            description="Configure automated testing and deployment pipeline",
            project_id="2",
            assigned_to=[users[1]],
            status=TaskStatus.IN_PROGRESS,
            priority=Priority.MEDIUM,
            due_date=_dt(2024, 3, 10),
            created_by="2",
            created_at=_dt(2024, 2, 5),
            updated_at=_dt(2024, 2, 18),
            tags=["devops", "automation"],
        ),
    ]


def default_notifications() -> list[Notification]:
    return [
        Notification(
            id="1",
            type=NotificationType.DEADLINE_APPROACHING,
            title="Deadline Approaching",
            message='Task "Implement User Authentication" is due in 2 days',
            user_id="1",
            created_at=_dt(2024, 2, 20),
            related_id="2",
        ),
        Notification(
            id="2",
            type=NotificationType.TASK_ASSIGNED,
            title="New Task Assigned",
            message='You have been assigned to "Build Product Catalog"',
            user_id="2",
            created_at=_dt(2024, 2, 15),
            related_id="3",
        ),
        Notification(
            id="3",
            type=NotificationType.TASK_COMPLETED,
            title="Task Completed",
            message='Ajay Dhangar completed "Design Database Schema"',
            user_id="1",
            read=True,
            created_at=_dt(2024, 2, 10),
            related_id="1",
        ),
    ]


def default_activities() -> list[Activity]:
    user = default_user()
    return [
        Activity(id="1", type=ActivityType.TASK_UPDATED,
                 description='Updated task "Implement User Authentication"',
                 user_id="1", user=user, project_id="1", task_id="2",
                 created_at=_dt(2024, 2, 20)),
        Activity(id="2", type=ActivityType.TASK_CREATED,
                 description='Created new task "Build Product Catalog"',
                 user_id="1", user=user, project_id="1", task_id="3",
                 created_at=_dt(2024, 2, 15)),
        Activity(id="3", type=ActivityType.PROJECT_CREATED,
                 description='Created new project "Data Analytics Dashboard"',
                 user_id="1", user=user, project_id="3",
                 created_at=_dt(2024, 3, 1)),
    ]


def default_customers() -> list[Customer]:
    return [
        Customer(
            id="cust-1", name="Amir Nissan", status=CustomerStatus.ACTIVE,
            contact_name="Amir Nissan", contact_email="amir@example.com",
            contact_phone="050-123-4567", country="Israel", tax_id="3453453454",
            join_date=_dt(2025, 3, 3), industry="Business consulting",
            billing_cycle="annual", billing_model=BillingModel.RETAINER,
            monthly_retainer=300, annual_fee=3600, hours_per_month=8,
            customer_score=82, referral_source="Google", user_id="1",
            tags=["premium", "B2B"],
        ),
        Customer(
            id="cust-2", name="Sivan Raz", status=CustomerStatus.TRIAL,
            contact_name="Sivan Raz", contact_email="sivan@example.com",
            contact_phone="052-987-6543", country="Israel", tax_id="512512512",
            join_date=_dt(2025, 1, 12), industry="Digital marketing",
            payment_method="credit-card", billing_model=BillingModel.PROJECT,
            project_fee=8000, hours_per_month=12, customer_score=68,
            referral_source="LinkedIn", user_id="1", tags=["pilot"],
        ),
        Customer(
            id="cust-3", name="Studio Or", status=CustomerStatus.PAUSED,
            contact_name="Or Levi", contact_email="or@example.com",
            contact_phone="053-222-3344", country="Israel", tax_id="298374652",
            join_date=_dt(2024, 7, 1), industry="Graphic design",
            payment_method="direct-debit", billing_model=BillingModel.RETAINER,
            monthly_retainer=1200, annual_fee=14400, hours_per_month=20,
            customer_score=54, referral_source="Word of mouth", user_id="1",
            tags=["freelancers"],
        ),
        Customer(
            id="cust-4", name="Keren Technologies", status=CustomerStatus.ACTIVE,
            contact_name="Dana Keren", contact_email="dana@example.com",
            contact_phone="054-876-5432", country="USA", tax_id="98-7654321",
            join_date=_dt(2023, 11, 15), industry="Software company",
            billing_cycle="quarterly", billing_model=BillingModel.RETAINER,
            currency="USD", monthly_retainer=4500, annual_fee=54000,
            hours_per_month=40, customer_score=91, referral_source="Conference",
            user_id="1", tags=["strategic", "long-term"],
        ),
        Customer(
            id="cust-5", name="Adi Digital", status=CustomerStatus.CHURNED,
            contact_name="Adi Ben Hur", contact_email="adi@example.com",
            contact_phone="058-111-8899", country="Israel", tax_id="457812369",
            join_date=_dt(2022, 5, 20), industry="Startup",
            payment_method="cash", billing_model=BillingModel.HOURLY,
            hourly_rate=250, hours_per_month=5, customer_score=40,
            referral_source="Facebook / Instagram", user_id="1",
            tags=["former", "follow-up"],
        ),
    ]


def default_time_entries() -> list[TimeEntry]:
    rates = {c.id: customer_hourly_rate(c) for c in default_customers()}
    rows = [
        # id, customer, project, task, description, start, end
        ("time-1", "cust-1", "1", "1", "New user interface design",
         _dt(2024, 12, 15, 9, 0), _dt(2024, 12, 15, 12, 30)),
        ("time-2", "cust-2", "2", "4", "Payments module development",
         _dt(2024, 12, 14, 10, 0), _dt(2024, 12, 14, 14, 0)),
        ("time-3", "cust-1", "2", None, "Planning meeting and requirements",
         _dt(2024, 12, 13, 14, 0), _dt(2024, 12, 13, 17, 15)),
        ("time-4", "cust-3", "3", None, "Performance optimization",
         _dt(2024, 12, 12, 9, 30), _dt(2024, 12, 12, 13, 0)),
        ("time-5", "cust-2", "2", "4", "Testing and bug fixes",
         _dt(2024, 12, 11, 15, 0), _dt(2024, 12, 11, 18, 30)),
    ]
    return [
        with_time_entry_totals(TimeEntry(
            id=entry_id, customer_id=customer_id, project_id=project_id,
            task_id=task_id, description=description,
            start_time=start, end_time=end, hourly_rate=rates[customer_id],
            user_id="1", created_at=end, updated_at=end,
        ))
        for entry_id, customer_id, project_id, task_id, description, start, end in rows
    ]


def default_incomes() -> list[Income]:
    return [
        with_income_totals(Income(
            id="income-1",
            customer_id="cust-1",
            customer_name="Amir Nissan",
            income_date=_dt(2025, 11, 5),
            invoice_number="45345345",
            vat_rate=0.18,
            amount_before_vat=12220,
            created_at=_dt(2025, 11, 5),
            updated_at=_dt(2025, 11, 5),
        )),
    ]


def default_dataset() -> dict:
    """Every collection keyed the way the cache and the API name them."""
    return {
        "user": default_user(),
        "projects": default_projects(),
        "tasks": default_tasks(),
        "notifications": default_notifications(),
        "activities": default_activities(),
        "customers": default_customers(),
        "timeEntries": default_time_entries(),
        "incomes": default_incomes(),
    }
