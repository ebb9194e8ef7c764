"""Clock and calendar helpers for billing windows."""

import calendar
from datetime import datetime, timezone

from chatbilling.billing.pricing import BillingCycle


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def billing_period_end(start: datetime, billing_cycle: BillingCycle) -> datetime:
    if BillingCycle(billing_cycle) is BillingCycle.MONTHLY:
        return add_months(start, 1)
    return add_months(start, 12)


def as_utc(moment: datetime) -> datetime:
    # Naive values coming back from storage are treated as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
