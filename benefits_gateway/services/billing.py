"""Billing cycle - debits every active subscription due on a date"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List

from sqlalchemy.orm import Session

from benefits_gateway.domain.billing import is_due
from benefits_gateway.domain.costs import compute_cost
from benefits_gateway.domain.exceptions import DomainException, InsufficientReference
from benefits_gateway.domain.models import DebitResult, HealthcarePlan
from benefits_gateway.domain.money import Money
from benefits_gateway.infrastructure.database.repositories import (
    PlanRepository,
    SubscriptionRepository,
    plan_to_domain,
    subscription_to_domain,
)
from benefits_gateway.infrastructure.observability.logging import log_billing_cycle, logger
from benefits_gateway.infrastructure.observability.metrics import billing_cycle_histogram
from benefits_gateway.services.wallets import WalletService


@dataclass(frozen=True)
class BillingFailure:
    subscription_id: uuid.UUID
    error: str


@dataclass
class BillingCycleReport:
    cycle_date: date
    debits: List[DebitResult] = field(default_factory=list)
    failures: List[BillingFailure] = field(default_factory=list)
    skipped: int = 0


class BillingService:
    def __init__(self, db: Session):
        self.db = db
        self.subscriptions = SubscriptionRepository(db)
        self.plans = PlanRepository(db)
        self.wallets = WalletService(db)

    def run_billing_cycle(self, cycle_date: date) -> BillingCycleReport:
        """
        Debit each active subscription whose billing day is cycle_date.

        Each subscription is claimed (last_billed_on moved to cycle_date),
        priced and debited in its own transaction, so a retried tick never
        debits twice and one bad subscription does not undo the others.
        Failures are reported, never turned into a zero charge.
        """
        start_time = time.time()
        report = BillingCycleReport(cycle_date=cycle_date)

        with billing_cycle_histogram.time():
            candidates = [subscription_to_domain(r) for r in self.subscriptions.list_billable(cycle_date)]
            plans: Dict[uuid.UUID, HealthcarePlan] = {
                p.id: plan_to_domain(p) for p in self.plans.get_many(s.plan_id for s in candidates)
            }

            for subscription in candidates:
                if not is_due(subscription, cycle_date):
                    report.skipped += 1
                    continue

                try:
                    plan = plans.get(subscription.plan_id)
                    if plan is None:
                        raise InsufficientReference(f"Plan {subscription.plan_id} not found")
                    cost = compute_cost(plan, subscription.items)

                    if not self.subscriptions.mark_billed(subscription.id, subscription.last_billed_on, cycle_date):
                        # Another run claimed this cycle or the subscription left active
                        self.db.rollback()
                        report.skipped += 1
                        continue

                    debit = self.wallets.debit_for_subscription(subscription, Money(cost.total_cents, plan.currency))
                    self.db.commit()
                    report.debits.append(debit)

                except DomainException as e:
                    self.db.rollback()
                    report.failures.append(BillingFailure(subscription_id=subscription.id, error=str(e)))
                    logger.error(
                        f"Billing failed: {e}",
                        extra={"subscription_id": str(subscription.id), "cycle_date": cycle_date.isoformat()},
                    )

        duration_ms = (time.time() - start_time) * 1000
        log_billing_cycle(
            cycle_date.isoformat(),
            debited=len(report.debits),
            skipped=report.skipped,
            failed=len(report.failures),
            duration_ms=duration_ms,
        )
        return report
