"""Billing math — pure business logic.

VAT breakdown for incomes, duration/income for time entries, and the hourly
rate implied by a customer's billing model.

No I/O: this module only transforms data. Amounts are stored unrounded;
rounding happens at presentation.
"""

from __future__ import annotations

import math
from datetime import datetime

from projectflow.data.models import BillingModel, Customer, Income, TimeEntry

DEFAULT_HOURLY_RATE = 300.0


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def vat_breakdown(amount_before_vat: float, vat_rate: float) -> tuple[float, float]:
    """Return (vat_amount, final_amount) for a pre-VAT amount and a rate like 0.18."""
    vat_amount = amount_before_vat * vat_rate
    return vat_amount, amount_before_vat + vat_amount


def with_income_totals(income: Income) -> Income:
    """Return the income with vat_amount and final_amount recomputed."""
    vat_amount, final_amount = vat_breakdown(income.amount_before_vat, income.vat_rate)
    if income.vat_amount == vat_amount and income.final_amount == final_amount:
        return income
    return income.model_copy(update={"vat_amount": vat_amount, "final_amount": final_amount})


def time_entry_figures(
    start_time: datetime, end_time: datetime, hourly_rate: float,
) -> tuple[int, float]:
    """Return (duration_seconds, income) for a worked interval.

    An interval that ends before it starts counts as zero seconds.
    """
    duration = max(0, int((end_time - start_time).total_seconds()))
    return duration, duration / 3600 * hourly_rate


def with_time_entry_totals(entry: TimeEntry) -> TimeEntry:
    """Return the time entry with duration and income recomputed."""
    duration, income = time_entry_figures(entry.start_time, entry.end_time, entry.hourly_rate)
    if entry.duration == duration and entry.income == income:
        return entry
    return entry.model_copy(update={"duration": duration, "income": income})


def customer_hourly_rate(customer: Customer) -> float:
    """Hourly rate to snapshot onto new time entries for this customer.

    Hourly customers use their explicit rate. Otherwise the monthly retainer
    is spread over the estimated monthly hours. Falls back to 300.
    """
    if customer.billing_model == BillingModel.HOURLY and customer.hourly_rate > 0:
        return customer.hourly_rate
    if customer.hours_per_month > 0 and customer.monthly_retainer > 0:
        return customer.monthly_retainer / customer.hours_per_month
    if customer.hourly_rate > 0:
        return customer.hourly_rate
    return DEFAULT_HOURLY_RATE


def customer_monthly_income(customer: Customer) -> float:
    """Expected monthly revenue implied by the billing model."""
    if customer.billing_model == BillingModel.RETAINER:
        return customer.monthly_retainer
    if customer.billing_model == BillingModel.HOURLY:
        return customer.hourly_rate * customer.hours_per_month
    return 0.0
