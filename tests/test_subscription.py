"""Tests for projectflow.core.subscription — access rules and trial dates."""

from datetime import datetime, timedelta, timezone

import pytest

from projectflow.core.subscription import (
    AccessStatus,
    UserStatus,
    check_access,
    extract_trial_end,
    fetch_access,
    is_expired,
    trial_end_date,
    user_status,
)
from projectflow.data.models import Subscription

UTC = timezone.utc
NOW = datetime(2024, 6, 1, tzinfo=UTC)
FUTURE = NOW + timedelta(days=3)
PAST = NOW - timedelta(days=3)


class TestCheckAccess:
    def test_no_subscription(self):
        result = check_access(None, NOW)
        assert result.has_full_access is False
        assert result.status == AccessStatus.NONE
        assert result.can_access_settings and result.can_access_pricing

    def test_suspended(self):
        sub = Subscription(status="suspended", plan_type="monthly", paypal_subscription_id="I-1")
        assert check_access(sub, NOW).status == AccessStatus.EXPIRED

    def test_paid(self):
        sub = Subscription(status="active", plan_type="monthly", paypal_subscription_id="I-1")
        result = check_access(sub, NOW)
        assert result.has_full_access is True
        assert result.status == AccessStatus.ACTIVE

    def test_trial_running_and_over(self):
        running = check_access(Subscription(plan_type="trial", end_date=FUTURE), NOW)
        over = check_access(Subscription(plan_type="trial", end_date=PAST), NOW)
        assert (running.has_full_access, running.status) == (True, AccessStatus.TRIAL)
        assert (over.has_full_access, over.status) == (False, AccessStatus.EXPIRED)
        assert running.expiration_date == FUTURE

    def test_naive_end_date(self):
        sub = Subscription(plan_type="free", end_date=datetime(2024, 7, 1))
        assert check_access(sub, NOW).has_full_access is True

    def test_cancelled_paid_plan(self):
        sub = Subscription(status="cancelled", plan_type="monthly")
        assert check_access(sub, NOW).has_full_access is False


class TestUserStatus:
    @pytest.mark.parametrize("kwargs,expected", [
        ({"is_free_access": True, "plan_type": "free", "status": "free", "end_date": FUTURE},
         UserStatus.FREE_ACCESS),
        ({"is_free_access": True, "plan_type": "free", "status": "expired"}, UserStatus.CHURNED),
        ({"is_trial_coupon": True, "plan_type": "trial", "end_date": FUTURE}, UserStatus.FREE_TRIAL),
        ({"is_trial_coupon": True, "plan_type": "trial", "end_date": PAST}, UserStatus.CHURNED),
        ({"status": "active", "plan_type": "annual", "paypal_subscription_id": "I-1"}, UserStatus.PAID),
        ({"status": "trialing", "plan_type": "monthly", "paypal_subscription_id": "I-1"},
         UserStatus.FREE_TRIAL),
        ({"status": "suspended", "plan_type": "monthly"}, UserStatus.CHURNED),
        ({"status": "trial", "plan_type": "trial", "end_date": FUTURE}, UserStatus.FREE_TRIAL),
        ({"status": "trial", "plan_type": "trial"}, UserStatus.CHURNED),
    ])
    def test_lifecycle(self, kwargs, expected):
        assert user_status(Subscription(**kwargs), NOW) == expected

    def test_no_subscription_is_churned(self):
        assert user_status(None, NOW) == UserStatus.CHURNED


class TestDates:
    def test_trial_end_date_uses_configured_days(self):
        assert trial_end_date(now=NOW) == NOW + timedelta(days=5)
        assert trial_end_date(14, NOW) == NOW + timedelta(days=14)

    def test_is_expired(self):
        assert is_expired(Subscription(end_date=PAST), NOW) is True
        assert is_expired(Subscription(end_date=FUTURE), NOW) is False
        assert is_expired(Subscription(status="cancelled")) is True
        assert is_expired(Subscription(status="active")) is False

    def test_explicit_trial_end(self):
        details = {"billing_info": {"trial_ended_at": "2024-06-10T00:00:00Z"}}
        assert extract_trial_end(details) == datetime(2024, 6, 10, tzinfo=UTC)

    @pytest.mark.parametrize("unit,count,expected", [
        ("DAY", 7, datetime(2024, 2, 7, tzinfo=UTC)),
        ("WEEK", 2, datetime(2024, 2, 14, tzinfo=UTC)),
        ("MONTH", 1, datetime(2024, 2, 29, tzinfo=UTC)),
        ("YEAR", 1, datetime(2025, 1, 31, tzinfo=UTC)),
    ])
    def test_trial_cycle_length(self, unit, count, expected):
        details = {
            "start_time": "2024-01-31T00:00:00Z",
            "billing_cycles": [
                {"tenure_type": "TRIAL",
                 "frequency": {"interval_unit": unit, "interval_count": count}},
                {"tenure_type": "REGULAR", "frequency": {"interval_unit": "MONTH"}},
            ],
        }
        assert extract_trial_end(details) == expected

    def test_next_billing_time_fallback(self):
        details = {"billing_info": {"next_billing_time": "2024-07-01T00:00:00Z"}}
        assert extract_trial_end(details) == datetime(2024, 7, 1, tzinfo=UTC)

    def test_nothing_to_go_on(self):
        assert extract_trial_end({}) is None
        assert extract_trial_end(None) is None


class TestFetchAccess:
    @pytest.mark.asyncio
    async def test_wrapped_response(self, remote):
        remote.get_subscription_status.return_value = {"subscription": {
            "planType": "trial", "status": "trial", "endDate": FUTURE.isoformat(),
        }}
        result = await fetch_access(remote, "u1", NOW)
        remote.get_subscription_status.assert_awaited_once_with("u1")
        assert result.status == AccessStatus.TRIAL

    @pytest.mark.asyncio
    async def test_remote_failure_means_no_access(self, failing_remote):
        result = await fetch_access(failing_remote, "u1", NOW)
        assert result.status == AccessStatus.NONE

    @pytest.mark.asyncio
    async def test_unreadable_record(self, remote):
        remote.get_subscription_status.return_value = {"endDate": "not-a-date"}
        result = await fetch_access(remote, "u1", NOW)
        assert result.status == AccessStatus.NONE

    @pytest.mark.asyncio
    async def test_empty_response(self, remote):
        result = await fetch_access(remote, "u1", NOW)
        assert result.status == AccessStatus.NONE
