"""
ProjectFlow — Dashboard Analytics.

Pure read-only aggregations over the store's entity lists: hours and income
per customer, income per hour and trends by month, project status counts,
upcoming deadlines, and the detailed customer report with A/B/C scoring.

No I/O: callers pass lists (usually straight from AppState) and a `now`.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from projectflow.core.billing import customer_monthly_income
from projectflow.data.models import (
    Customer,
    CustomerStatus,
    Income,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    TimeEntry,
)

# Scoring thresholds on the averaged metric ratio
SCORE_A = 1.2
SCORE_B = 0.8
RATIO_CAP = 2.0

DUE_SOON_DAYS = 2


@dataclass
class CustomerTotal:
    customer_id: str
    name: str
    value: float


@dataclass
class MonthlyFigure:
    month: str          # "2024-12", sorts chronologically
    label: str          # "Dec 2024"
    income: float = 0.0
    hours: float = 0.0

    @property
    def income_per_hour(self) -> float:
        return self.income / self.hours if self.hours > 0 else 0.0


class DeadlineStatus(Enum):
    OVERDUE = "overdue"
    DUE_SOON = "due-soon"
    UPCOMING = "upcoming"


@dataclass
class ScoreMetrics:
    monthly_income: float = 0.0
    hourly_rate: float = 0.0
    seniority: float = 0.0          # months
    referrals_count: float = 0.0
    total_revenue: float = 0.0
    referred_revenue: float = 0.0


@dataclass
class CustomerReportRow:
    customer: Customer
    score: str
    metrics: ScoreMetrics = field(default_factory=ScoreMetrics)
    worked_hours: float = 0.0       # current month
    received_payments: float = 0.0  # current month
    avg_hourly_rate: float = 0.0    # current month


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _in_range(when: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and when < start:
        return False
    if end is not None and when > end:
        return False
    return True


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """First and last instant of now's calendar month."""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_day = calendar.monthrange(now.year, now.month)[1]
    end = start.replace(day=last_day) + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


# ---------------------------------------------------------------------------
# Per-customer totals
# ---------------------------------------------------------------------------


def _top(totals: dict[str, float], customers: list[Customer], limit: int) -> list[CustomerTotal]:
    names = {c.id: c.name for c in customers}
    rows = [
        CustomerTotal(customer_id, names[customer_id], value)
        for customer_id, value in totals.items()
        if customer_id in names and value > 0
    ]
    rows.sort(key=lambda r: r.value, reverse=True)
    return rows[:limit]


def hours_by_customer(
    time_entries: list[TimeEntry],
    customers: list[Customer],
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 10,
) -> list[CustomerTotal]:
    totals: dict[str, float] = defaultdict(float)
    for entry in time_entries:
        if _in_range(entry.start_time, start, end):
            totals[entry.customer_id] += entry.duration / 3600
    return _top(totals, customers, limit)


def income_by_customer(
    time_entries: list[TimeEntry],
    incomes: list[Income],
    customers: list[Customer],
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 10,
) -> list[CustomerTotal]:
    """Time-entry income plus income records (after VAT) per customer."""
    totals: dict[str, float] = defaultdict(float)
    for entry in time_entries:
        if _in_range(entry.start_time, start, end):
            totals[entry.customer_id] += entry.income
    for income in incomes:
        if _in_range(income.income_date, start, end):
            totals[income.customer_id] += income.final_amount
    return _top(totals, customers, limit)


# ---------------------------------------------------------------------------
# Monthly series
# ---------------------------------------------------------------------------


def _month(figures: dict[str, MonthlyFigure], when: datetime) -> MonthlyFigure:
    key = when.strftime("%Y-%m")
    if key not in figures:
        figures[key] = MonthlyFigure(month=key, label=when.strftime("%b %Y"))
    return figures[key]


def income_per_hour_by_month(time_entries: list[TimeEntry]) -> list[MonthlyFigure]:
    figures: dict[str, MonthlyFigure] = {}
    for entry in time_entries:
        month = _month(figures, entry.start_time)
        month.income += entry.income
        month.hours += entry.duration / 3600
    return sorted(figures.values(), key=lambda f: f.month)


def monthly_trends(
    time_entries: list[TimeEntry],
    incomes: list[Income],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[MonthlyFigure]:
    """Income (time entries + income records) and hours worked, per month."""
    figures: dict[str, MonthlyFigure] = {}
    for entry in time_entries:
        if _in_range(entry.start_time, start, end):
            month = _month(figures, entry.start_time)
            month.income += entry.income
            month.hours += entry.duration / 3600
    for income in incomes:
        if _in_range(income.income_date, start, end):
            _month(figures, income.income_date).income += income.final_amount
    return sorted(figures.values(), key=lambda f: f.month)


# ---------------------------------------------------------------------------
# Projects & deadlines
# ---------------------------------------------------------------------------

_STATUS_ORDER = (
    ProjectStatus.IN_PROGRESS,
    ProjectStatus.COMPLETED,
    ProjectStatus.PLANNING,
    ProjectStatus.ON_HOLD,
)


def project_status_breakdown(projects: list[Project]) -> dict[ProjectStatus, int]:
    """Project count per status, omitting statuses with no projects."""
    counts = {status: 0 for status in _STATUS_ORDER}
    for project in projects:
        counts[project.status] += 1
    return {status: count for status, count in counts.items() if count > 0}


def days_until(due: datetime, now: datetime | None = None) -> int:
    """Whole days from now to due, truncated toward zero."""
    now = now or _utcnow()
    return int((due - now).total_seconds() / 86400)


def deadline_status(due: datetime, now: datetime | None = None) -> DeadlineStatus:
    days = days_until(due, now)
    if days < 0:
        return DeadlineStatus.OVERDUE
    if days <= DUE_SOON_DAYS:
        return DeadlineStatus.DUE_SOON
    return DeadlineStatus.UPCOMING


def upcoming_deadlines(tasks: list[Task], limit: int = 5) -> list[Task]:
    """Open tasks, earliest due date first."""
    open_tasks = [t for t in tasks if t.status != TaskStatus.COMPLETED]
    return sorted(open_tasks, key=lambda t: t.due_date)[:limit]


# ---------------------------------------------------------------------------
# Customer scoring
# ---------------------------------------------------------------------------


def customer_seniority(customer: Customer, now: datetime | None = None) -> int:
    """Months since joining; 0 for customers that are not active."""
    if customer.status != CustomerStatus.ACTIVE:
        return 0
    now = now or _utcnow()
    joined = customer.join_date
    return max(0, (now.year - joined.year) * 12 + now.month - joined.month)


def referrals_count(customer_id: str, customers: list[Customer]) -> int:
    return sum(
        1 for c in customers
        if c.referral_source and customer_id in c.referral_source
    )


def all_time_revenue(customer_id: str, time_entries: list[TimeEntry], incomes: list[Income]) -> float:
    return (
        sum(e.income for e in time_entries if e.customer_id == customer_id)
        + sum(i.final_amount for i in incomes if i.customer_id == customer_id)
    )


def referred_revenue(
    customer_id: str,
    customers: list[Customer],
    time_entries: list[TimeEntry],
    incomes: list[Income],
) -> float:
    return sum(
        all_time_revenue(c.id, time_entries, incomes)
        for c in customers if c.referral_source == customer_id
    )


def effective_hourly_rate(customer_id: str, time_entries: list[TimeEntry]) -> float:
    entries = [e for e in time_entries if e.customer_id == customer_id]
    hours = sum(e.duration for e in entries) / 3600
    return sum(e.income for e in entries) / hours if hours > 0 else 0.0


def score_metrics(
    customer: Customer,
    customers: list[Customer],
    time_entries: list[TimeEntry],
    incomes: list[Income],
    now: datetime | None = None,
) -> ScoreMetrics:
    return ScoreMetrics(
        monthly_income=customer_monthly_income(customer),
        hourly_rate=effective_hourly_rate(customer.id, time_entries),
        seniority=customer_seniority(customer, now),
        referrals_count=referrals_count(customer.id, customers),
        total_revenue=all_time_revenue(customer.id, time_entries, incomes),
        referred_revenue=referred_revenue(customer.id, customers, time_entries, incomes),
    )


def customer_score(
    customer: Customer,
    customers: list[Customer],
    time_entries: list[TimeEntry],
    incomes: list[Income],
    now: datetime | None = None,
) -> str:
    """Grade a customer A, B or C against the average active customer.

    Each metric contributes its ratio to the active-customer average, capped
    at 2; metrics whose average is zero are skipped. The mean ratio decides
    the grade: >= 1.2 is A, >= 0.8 is B, anything else (or no active
    customers to compare with) is C.
    """
    active = [c for c in customers if c.status == CustomerStatus.ACTIVE]
    if not active:
        return "C"

    mine = score_metrics(customer, customers, time_entries, incomes, now)
    peers = [score_metrics(c, customers, time_entries, incomes, now) for c in active]

    total = 0.0
    count = 0
    for name in ScoreMetrics.__dataclass_fields__:
        average = sum(getattr(p, name) for p in peers) / len(active)
        if average > 0:
            total += min(getattr(mine, name) / average, RATIO_CAP)
            count += 1
    if count == 0:
        return "C"

    final = total / count
    if final >= SCORE_A:
        return "A"
    if final >= SCORE_B:
        return "B"
    return "C"


def customer_report(
    customers: list[Customer],
    time_entries: list[TimeEntry],
    incomes: list[Income],
    now: datetime | None = None,
) -> list[CustomerReportRow]:
    """One row per active customer, with current-month work and payments."""
    now = now or _utcnow()
    start, end = month_bounds(now)
    rows: list[CustomerReportRow] = []
    for customer in customers:
        if customer.status != CustomerStatus.ACTIVE:
            continue
        period_entries = [
            e for e in time_entries
            if e.customer_id == customer.id and _in_range(e.start_time, start, end)
        ]
        worked_hours = sum(e.duration for e in period_entries) / 3600
        received = sum(e.income for e in period_entries) + sum(
            i.final_amount for i in incomes
            if i.customer_id == customer.id and _in_range(i.income_date, start, end)
        )
        rows.append(CustomerReportRow(
            customer=customer,
            score=customer_score(customer, customers, time_entries, incomes, now),
            metrics=score_metrics(customer, customers, time_entries, incomes, now),
            worked_hours=worked_hours,
            received_payments=received,
            avg_hourly_rate=received / worked_hours if worked_hours > 0 else 0.0,
        ))
    return rows
