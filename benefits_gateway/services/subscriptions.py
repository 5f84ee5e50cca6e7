"""Subscription creation, lookup and termination"""

import dataclasses
import uuid
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from benefits_gateway.domain.billing import validate_anchor
from benefits_gateway.domain.costs import compute_cost, validate_percentage
from benefits_gateway.domain.enrollment import check_declared_type, initial_status, initial_steps, validate_items
from benefits_gateway.domain.exceptions import InsufficientReference, InvalidSubscription
from benefits_gateway.domain.lifecycle import LifecycleEvent, transition
from benefits_gateway.domain.models import (
    CostBreakdown,
    HealthcareSubscription,
    Role,
    SubscriptionItem,
    SubscriptionType,
    TransitionResult,
)
from benefits_gateway.infrastructure.database.repositories import (
    EmployeeRepository,
    PlanRepository,
    SubscriptionRepository,
    plan_to_domain,
    subscription_to_domain,
)
from benefits_gateway.infrastructure.observability.logging import log_subscription_created, logger
from benefits_gateway.infrastructure.observability.metrics import subscriptions_created_counter, terminations_counter

TERMINATION_ATTEMPTS = 3


class SubscriptionService:
    """Creates subscriptions in their initial onboarding state and terminates them"""

    def __init__(self, db: Session):
        self.db = db
        self.employees = EmployeeRepository(db)
        self.plans = PlanRepository(db)
        self.subscriptions = SubscriptionRepository(db)

    def get_subscription(self, subscription_id: uuid.UUID) -> HealthcareSubscription:
        record = self.subscriptions.get(subscription_id)
        if record is None:
            raise InsufficientReference(f"Subscription {subscription_id} not found")
        return subscription_to_domain(record)

    def monthly_cost(self, subscription: HealthcareSubscription) -> CostBreakdown:
        """Price a subscription against its plan as currently stored"""
        plan_record = self.plans.get(subscription.plan_id)
        if plan_record is None:
            raise InsufficientReference(f"Healthcare plan {subscription.plan_id} not found")
        return compute_cost(plan_to_domain(plan_record), subscription.items)

    def create_subscription(
        self,
        employee_id: uuid.UUID,
        plan_id: uuid.UUID,
        items: Sequence[SubscriptionItem],
        declared_type: Optional[SubscriptionType] = None,
        start_date: Optional[date] = None,
        billing_anchor: Optional[int] = None,
    ) -> HealthcareSubscription:
        """
        Validate the item set and persist a new subscription.

        Flow:
        1. Resolve employee and plan
        2. Check item-set shape and declared type
        3. Fill the employee item's identity and check dependent identities
        4. Price the items once so an unpriceable set is rejected up front
        5. Persist with the initial status and step records

        Raises:
            InsufficientReference: unknown employee, plan or identity record
            InvalidSubscription / InvalidRole / InvalidPlanConfiguration
        """
        employee = self.employees.get(employee_id)
        if employee is None:
            raise InsufficientReference(f"Employee {employee_id} not found")

        plan_record = self.plans.get(plan_id)
        if plan_record is None:
            raise InsufficientReference(f"Healthcare plan {plan_id} not found")
        plan = plan_to_domain(plan_record)

        validate_items(items)
        subscription_type = check_declared_type(items, declared_type)
        resolved = [self._resolve_item(item, employee.demographic_id) for item in items]

        compute_cost(plan, resolved)

        start = start_date or date.today()
        try:
            anchor = validate_anchor(billing_anchor if billing_anchor is not None else start.day)
        except ValueError as e:
            raise InvalidSubscription(str(e)) from e

        status = initial_status(resolved)
        subscription = HealthcareSubscription(
            id=uuid.uuid4(),
            employee_id=employee.id,
            company_id=employee.company_id,
            plan_id=plan.id,
            items=resolved,
            status=status,
            start_date=start,
            billing_anchor=anchor,
            steps=initial_steps(status, datetime.now(timezone.utc)),
        )

        self.subscriptions.create_subscription(subscription, subscription_type)
        self.db.commit()

        subscriptions_created_counter.labels(type=subscription_type.value).inc()
        log_subscription_created(str(subscription.id), str(employee.id), status.value, subscription_type.value)

        return self.get_subscription(subscription.id)

    def _resolve_item(self, item: SubscriptionItem, employee_demographic_id: uuid.UUID) -> SubscriptionItem:
        role = Role(item.role)
        if item.employer_percentage_override is not None:
            validate_percentage(item.employer_percentage_override)

        if role == Role.EMPLOYEE:
            if item.demographic_id is not None and item.demographic_id != employee_demographic_id:
                raise InvalidSubscription("Employee item must reference the employee's own identity record")
            return dataclasses.replace(item, role=role, demographic_id=employee_demographic_id)

        if item.demographic_id is not None and self.employees.get_demographic(item.demographic_id) is None:
            raise InsufficientReference(f"Identity record {item.demographic_id} not found")
        return dataclasses.replace(item, role=role)

    def terminate_subscription(self, subscription_id: uuid.UUID, on: Optional[date] = None) -> TransitionResult:
        """
        End a subscription from any non-terminated state.

        Returns applied=False for an already terminated subscription; the
        stored record is untouched in that case. Without an explicit date the
        subscription ends today, or on its start date if that is later.

        Raises:
            InvalidSubscription: on is earlier than the start date
        """
        for _ in range(TERMINATION_ATTEMPTS):
            current = self.get_subscription(subscription_id)
            result = transition(current.status, LifecycleEvent.TERMINATION_REQUESTED)
            if not result.applied:
                return dataclasses.replace(result, subscription=current)

            if on is not None and on < current.start_date:
                raise InvalidSubscription(
                    f"End date {on.isoformat()} is before start date {current.start_date.isoformat()}"
                )
            end_date = on or max(date.today(), current.start_date)

            if self.subscriptions.compare_and_set_status(
                subscription_id, result.from_status, result.to_status, end_date=end_date
            ):
                self.db.commit()
                terminations_counter.inc()
                logger.info(
                    "Subscription terminated",
                    extra={
                        "subscription_id": str(subscription_id),
                        "step": "subscription_terminated",
                        "from_status": result.from_status.value,
                    },
                )
                return dataclasses.replace(result, subscription=self.get_subscription(subscription_id))

            # Status moved under us; re-read and decide again
            self.db.rollback()

        current = self.get_subscription(subscription_id)
        return TransitionResult(
            applied=False,
            from_status=current.status,
            to_status=current.status,
            subscription=current,
        )
