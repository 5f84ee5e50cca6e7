"""Billing calendar - which active subscriptions are due on a cycle date"""

from datetime import date

from benefits_gateway.domain.models import HealthcareSubscription, SubscriptionStatus
from benefits_gateway.utils.date_utils import effective_billing_day, month_start

MIN_ANCHOR = 1
MAX_ANCHOR = 31


def validate_anchor(anchor: int) -> int:
    if not MIN_ANCHOR <= anchor <= MAX_ANCHOR:
        raise ValueError(f"Billing anchor must be between {MIN_ANCHOR} and {MAX_ANCHOR}, got {anchor}")
    return anchor


def already_billed(subscription: HealthcareSubscription, cycle_date: date) -> bool:
    """True once any cycle in cycle_date's month or later has been claimed"""
    last = subscription.last_billed_on
    return last is not None and last >= month_start(cycle_date)


def is_due(subscription: HealthcareSubscription, cycle_date: date) -> bool:
    """
    A subscription is debited on cycle_date when it is active, has started,
    has not ended, its clamped anchor falls on that day and it was not
    already billed this month.
    """
    if subscription.status != SubscriptionStatus.ACTIVE:
        return False
    if subscription.start_date > cycle_date:
        return False
    if subscription.end_date is not None and subscription.end_date < cycle_date:
        return False
    if effective_billing_day(subscription.billing_anchor, cycle_date) != cycle_date.day:
        return False
    return not already_billed(subscription, cycle_date)
