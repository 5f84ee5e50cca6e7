"""Subscription lifecycle state machine"""

from enum import Enum
from typing import Dict, Optional, Tuple

from benefits_gateway.domain.models import StepType, SubscriptionStatus, TransitionResult


class LifecycleEvent(str, Enum):
    DEMOGRAPHIC_VERIFIED = "demographic_verified"
    DOCUMENTS_ACCEPTED = "documents_accepted"
    PLAN_ACTIVATION_CONFIRMED = "plan_activation_confirmed"
    TERMINATION_REQUESTED = "termination_requested"


# event -> (required from status, resulting status)
TRANSITIONS: Dict[LifecycleEvent, Tuple[SubscriptionStatus, SubscriptionStatus]] = {
    LifecycleEvent.DEMOGRAPHIC_VERIFIED: (
        SubscriptionStatus.DEMOGRAPHIC_VERIFICATION_PENDING,
        SubscriptionStatus.DOCUMENT_UPLOAD_PENDING,
    ),
    LifecycleEvent.DOCUMENTS_ACCEPTED: (
        SubscriptionStatus.DOCUMENT_UPLOAD_PENDING,
        SubscriptionStatus.PLAN_ACTIVATION_PENDING,
    ),
    LifecycleEvent.PLAN_ACTIVATION_CONFIRMED: (
        SubscriptionStatus.PLAN_ACTIVATION_PENDING,
        SubscriptionStatus.ACTIVE,
    ),
}

STEP_EVENTS: Dict[StepType, LifecycleEvent] = {
    StepType.DEMOGRAPHIC_VERIFICATION: LifecycleEvent.DEMOGRAPHIC_VERIFIED,
    StepType.DOCUMENT_UPLOAD: LifecycleEvent.DOCUMENTS_ACCEPTED,
    StepType.PLAN_ACTIVATION: LifecycleEvent.PLAN_ACTIVATION_CONFIRMED,
}

# Onboarding steps in workflow order, with the status each one gates
STEP_ORDER: Tuple[Tuple[StepType, SubscriptionStatus], ...] = (
    (StepType.DEMOGRAPHIC_VERIFICATION, SubscriptionStatus.DEMOGRAPHIC_VERIFICATION_PENDING),
    (StepType.DOCUMENT_UPLOAD, SubscriptionStatus.DOCUMENT_UPLOAD_PENDING),
    (StepType.PLAN_ACTIVATION, SubscriptionStatus.PLAN_ACTIVATION_PENDING),
)


def is_terminal(status: SubscriptionStatus) -> bool:
    return status == SubscriptionStatus.TERMINATED


def required_step(status: SubscriptionStatus) -> Optional[StepType]:
    """Onboarding step the subscription is waiting on, None once active or terminated"""
    for step_type, gated_status in STEP_ORDER:
        if gated_status == status:
            return step_type
    return None


def target_status(event: LifecycleEvent, current: SubscriptionStatus) -> Optional[SubscriptionStatus]:
    """Resulting status if event is legal from current, else None"""
    if event == LifecycleEvent.TERMINATION_REQUESTED:
        return None if is_terminal(current) else SubscriptionStatus.TERMINATED

    required_from, to_status = TRANSITIONS[event]
    return to_status if current == required_from else None


def transition(current: SubscriptionStatus, event: LifecycleEvent) -> TransitionResult:
    """
    Apply an event to a status.

    Never raises for an out-of-order event: the result reports applied=False
    and to_status equal to the unchanged current status.
    """
    to_status = target_status(event, current)
    if to_status is None:
        return TransitionResult(applied=False, from_status=current, to_status=current)
    return TransitionResult(applied=True, from_status=current, to_status=to_status)
