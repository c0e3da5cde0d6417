"""Billing period utilities for monthly and yearly subscriptions."""
from datetime import datetime, timedelta, timezone

from mindful.billing.plans import BillingCycle

PERIOD_LENGTHS: dict[BillingCycle, timedelta] = {
    BillingCycle.MONTHLY: timedelta(days=30),
    BillingCycle.YEARLY: timedelta(days=365),
}


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def get_period_end(period_start: datetime, billing_cycle: BillingCycle) -> datetime:
    """Get the end of a billing period.

    Args:
        period_start: When the period starts.
        billing_cycle: Monthly (30 days) or yearly (365 days).

    Returns:
        The period start plus the fixed cycle length.
    """
    return period_start + PERIOD_LENGTHS[billing_cycle]


def ensure_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC; convert aware ones to UTC.

    SQLite returns stored timestamps without their offset.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
