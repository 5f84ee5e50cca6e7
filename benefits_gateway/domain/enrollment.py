"""Enrollment rules - item-set validation, derived type and initial onboarding state"""

from collections import Counter
from datetime import datetime
from typing import List, Optional, Sequence

from benefits_gateway.domain.exceptions import InvalidRole, InvalidSubscription
from benefits_gateway.domain.lifecycle import STEP_ORDER
from benefits_gateway.domain.models import (
    Role,
    StepStatus,
    SubscriptionItem,
    SubscriptionStatus,
    SubscriptionStep,
    SubscriptionType,
)


def validate_items(items: Sequence[SubscriptionItem]) -> None:
    """
    Enforce the item-set shape.

    Requirements:
    - exactly one employee item
    - at most one spouse item
    - any number of child items
    """
    roles = []
    for item in items:
        try:
            roles.append(Role(item.role))
        except ValueError as e:
            raise InvalidRole(f"Unknown role {item.role!r}") from e

    counts = Counter(roles)
    if counts[Role.EMPLOYEE] != 1:
        raise InvalidSubscription(f"Subscription needs exactly one employee item, got {counts[Role.EMPLOYEE]}")
    if counts[Role.SPOUSE] > 1:
        raise InvalidSubscription(f"Subscription allows at most one spouse item, got {counts[Role.SPOUSE]}")


def derive_type(items: Sequence[SubscriptionItem]) -> SubscriptionType:
    """individual iff the item set is exactly {employee}"""
    if len(items) == 1 and Role(items[0].role) == Role.EMPLOYEE:
        return SubscriptionType.INDIVIDUAL
    return SubscriptionType.FAMILY


def check_declared_type(items: Sequence[SubscriptionItem], declared: Optional[SubscriptionType]) -> SubscriptionType:
    derived = derive_type(items)
    if declared is None:
        return derived
    try:
        declared = SubscriptionType(declared)
    except ValueError as e:
        raise InvalidSubscription(f"Unknown subscription type {declared!r}") from e
    if declared != derived:
        raise InvalidSubscription(f"Declared type {declared.value} does not match item set ({derived.value})")
    return derived


def has_new_dependents(items: Sequence[SubscriptionItem]) -> bool:
    return any(item.role != Role.EMPLOYEE and item.demographic_id is None for item in items)


def initial_status(items: Sequence[SubscriptionItem]) -> SubscriptionStatus:
    # Dependents without an identity record must go through demographic verification
    if has_new_dependents(items):
        return SubscriptionStatus.DEMOGRAPHIC_VERIFICATION_PENDING
    return SubscriptionStatus.DOCUMENT_UPLOAD_PENDING


def initial_steps(status: SubscriptionStatus, now: datetime) -> List[SubscriptionStep]:
    """Step records for a new subscription; steps before the initial status are completed"""
    steps = []
    reached = False
    for step_type, gated_status in STEP_ORDER:
        if gated_status == status:
            reached = True
        if reached:
            steps.append(SubscriptionStep(step_type=step_type))
        else:
            steps.append(SubscriptionStep(step_type=step_type, status=StepStatus.COMPLETED, completed_at=now))
    return steps
