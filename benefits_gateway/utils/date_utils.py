"""Date manipulation utilities"""

import calendar
from datetime import date


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def effective_billing_day(anchor: int, on: date) -> int:
    """Billing anchor clamped to the month length (anchor 31 bills on Feb 28/29)"""
    return min(anchor, days_in_month(on.year, on.month))


def month_start(on: date) -> date:
    return on.replace(day=1)
