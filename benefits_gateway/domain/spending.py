"""Spending aggregation across a company's subscriptions"""

import uuid
from typing import Dict, Iterable, Mapping

from benefits_gateway.domain.costs import compute_cost
from benefits_gateway.domain.exceptions import InsufficientReference
from benefits_gateway.domain.models import (
    EmployeeSpending,
    HealthcarePlan,
    HealthcareSubscription,
    PlanSpending,
    SpendingStatistics,
    SubscriptionStatus,
)
from benefits_gateway.domain.money import Money


def aggregate_spending(
    company_id: uuid.UUID,
    subscriptions: Iterable[HealthcareSubscription],
    plans: Mapping[uuid.UUID, HealthcarePlan],
    projected: Iterable[HealthcareSubscription] = (),
    default_currency: str = "USD",
) -> SpendingStatistics:
    """
    Roll up monthly cost for active subscriptions plus any projected ones.

    Pending and terminated subscriptions in `subscriptions` are skipped;
    everything in `projected` is counted as given. A subscription listed in
    both is counted once. Breakdowns are sorted by id for stable output.

    Totals are reported in one currency: that of the first counted plan, or
    default_currency when nothing is counted. Plans in another currency
    raise CurrencyMismatch rather than being summed.
    """
    employees: Dict[uuid.UUID, EmployeeSpending] = {}
    plan_buckets: Dict[uuid.UUID, PlanSpending] = {}
    seen = set()

    counted = [s for s in subscriptions if s.status == SubscriptionStatus.ACTIVE]
    counted.extend(projected)

    currency = next((plans[s.plan_id].currency for s in counted if s.plan_id in plans), default_currency)
    total = employer = employee = Money(0, currency)

    for subscription in counted:
        if subscription.id in seen:
            continue
        seen.add(subscription.id)

        plan = plans.get(subscription.plan_id)
        if plan is None:
            raise InsufficientReference(f"Plan {subscription.plan_id} not found for subscription {subscription.id}")

        cost = compute_cost(plan, subscription.items)
        total += Money(cost.total_cents, plan.currency)
        employer += Money(cost.employer_cents, plan.currency)
        employee += Money(cost.employee_cents, plan.currency)

        emp = employees.setdefault(subscription.employee_id, EmployeeSpending(employee_id=subscription.employee_id))
        emp.total_cents += cost.total_cents
        emp.employer_cents += cost.employer_cents
        emp.employee_cents += cost.employee_cents

        bucket = plan_buckets.setdefault(subscription.plan_id, PlanSpending(plan_id=subscription.plan_id))
        bucket.subscription_count += 1
        bucket.total_cents += cost.total_cents
        bucket.employer_cents += cost.employer_cents
        bucket.employee_cents += cost.employee_cents

    return SpendingStatistics(
        company_id=company_id,
        currency=total.currency,
        total_cents=total.cents,
        employer_cents=employer.cents,
        employee_cents=employee.cents,
        employees=tuple(employees[k] for k in sorted(employees, key=str)),
        plans=tuple(plan_buckets[k] for k in sorted(plan_buckets, key=str)),
    )
