"""
ProjectFlow — Subscription access rules.

Decides what a user may do from their Subscription record:
- suspended: no full access,
- active with a payment-processor subscription id: full access,
- free or trial plans: full access until end_date passes,
- anything else (cancelled, expired): no full access.

Settings and pricing pages stay reachable in every case.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from projectflow.core.normalize import coerce_optional_datetime
from projectflow.data.models import Subscription
from projectflow.ports.remote_port import RemoteError

if TYPE_CHECKING:
    from projectflow.ports.remote_port import RemotePort

logger = logging.getLogger(__name__)


class AccessStatus(Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    EXPIRED = "expired"
    NONE = "none"


class UserStatus(Enum):
    FREE_TRIAL = "Free trial"
    PAID = "Active user (Paid)"
    CHURNED = "Churned"
    FREE_ACCESS = "Free access"


@dataclass
class AccessResult:
    has_full_access: bool
    status: AccessStatus
    expiration_date: datetime | None = None
    can_access_settings: bool = True
    can_access_pricing: bool = True


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _add_months(when: datetime, months: int) -> datetime:
    month_index = when.month - 1 + months
    year = when.year + month_index // 12
    month = month_index % 12 + 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


def trial_end_date(days: int | None = None, now: datetime | None = None) -> datetime:
    if days is None:
        from projectflow.config import settings
        days = settings.TRIAL_DAYS
    return (now or _utcnow()) + timedelta(days=days)


def extract_trial_end(details: dict[str, Any] | None) -> datetime | None:
    """Find when the trial ends in a payment processor's subscription details.

    Tries, in order: billing_info.trial_ended_at; the start time plus the
    length of the TRIAL billing cycle; billing_info.next_billing_time.
    """
    if not details:
        return None
    billing_info = details.get("billing_info") or {}

    if billing_info.get("trial_ended_at"):
        return coerce_optional_datetime(billing_info["trial_ended_at"], "trial_ended_at")

    cycles = details.get("billing_cycles") or []
    trial = next((c for c in cycles if c.get("tenure_type") == "TRIAL"), None)
    if trial is not None:
        start = (
            details.get("start_time")
            or details.get("create_time")
            or billing_info.get("next_billing_time")
        )
        frequency = trial.get("frequency")
        if start and frequency:
            start_date = coerce_optional_datetime(start, "start_time")
            count = frequency.get("interval_count") or 1
            unit = frequency.get("interval_unit") or "DAY"
            if unit == "DAY":
                return start_date + timedelta(days=count)
            if unit == "WEEK":
                return start_date + timedelta(weeks=count)
            if unit == "MONTH":
                return _add_months(start_date, count)
            if unit == "YEAR":
                return _add_months(start_date, 12 * count)
            return start_date

    if billing_info.get("next_billing_time"):
        return coerce_optional_datetime(billing_info["next_billing_time"], "next_billing_time")
    return None


def _past(end_date: datetime | None, now: datetime) -> bool:
    if end_date is None:
        return False
    return now > coerce_optional_datetime(end_date, "end_date")


def is_expired(subscription: Subscription, now: datetime | None = None) -> bool:
    if subscription.end_date is None:
        # paid subscriptions without an end date run until cancelled
        return subscription.status in ("expired", "cancelled")
    return _past(subscription.end_date, now or _utcnow())


def check_access(subscription: Subscription | None, now: datetime | None = None) -> AccessResult:
    if subscription is None:
        return AccessResult(False, AccessStatus.NONE)

    now = now or _utcnow()
    end = subscription.end_date
    if subscription.status == "suspended":
        return AccessResult(False, AccessStatus.EXPIRED, end)
    if subscription.status == "active" and subscription.paypal_subscription_id:
        return AccessResult(True, AccessStatus.ACTIVE, end)
    if subscription.plan_type in ("free", "trial"):
        expired = _past(end, now)
        return AccessResult(not expired, AccessStatus.EXPIRED if expired else AccessStatus.TRIAL, end)
    return AccessResult(False, AccessStatus.EXPIRED, end)


def user_status(subscription: Subscription | None, now: datetime | None = None) -> UserStatus:
    """Lifecycle label used by the admin views."""
    if subscription is None:
        return UserStatus.CHURNED

    now = now or _utcnow()
    expired = _past(subscription.end_date, now)
    if subscription.is_free_access and subscription.plan_type == "free":
        if subscription.status == "expired" or expired:
            return UserStatus.CHURNED
        return UserStatus.FREE_ACCESS
    if subscription.is_trial_coupon and subscription.plan_type == "trial":
        return UserStatus.CHURNED if expired else UserStatus.FREE_TRIAL
    if subscription.status == "suspended":
        return UserStatus.CHURNED
    if subscription.status == "active" and subscription.paypal_subscription_id:
        return UserStatus.PAID
    if subscription.status == "trialing" and subscription.paypal_subscription_id:
        return UserStatus.FREE_TRIAL
    if subscription.status in ("cancelled", "expired"):
        return UserStatus.CHURNED
    if subscription.plan_type in ("free", "trial") and subscription.end_date is not None:
        if expired:
            return UserStatus.CHURNED
        return UserStatus.FREE_ACCESS if subscription.is_free_access else UserStatus.FREE_TRIAL
    return UserStatus.CHURNED


async def fetch_access(remote: RemotePort, user_id: str, now: datetime | None = None) -> AccessResult:
    """Load the user's subscription and evaluate it. Degrades to no access."""
    try:
        raw = await remote.get_subscription_status(user_id)
    except RemoteError as exc:
        logger.warning("Subscription lookup failed for %s: %s", user_id, exc)
        return check_access(None, now)

    if isinstance(raw, dict) and isinstance(raw.get("subscription"), dict):
        raw = raw["subscription"]
    if not raw:
        return check_access(None, now)
    try:
        subscription = Subscription.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Unreadable subscription for %s: %s", user_id, exc)
        return check_access(None, now)
    return check_access(subscription, now)
