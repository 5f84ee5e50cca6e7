"""Company spending statistics"""

import uuid
from typing import Sequence

from sqlalchemy.orm import Session

from benefits_gateway.config import settings
from benefits_gateway.domain.exceptions import InsufficientReference, InvalidSubscription
from benefits_gateway.domain.models import SpendingStatistics, SubscriptionStatus
from benefits_gateway.domain.spending import aggregate_spending
from benefits_gateway.infrastructure.database.repositories import (
    CompanyRepository,
    PlanRepository,
    SubscriptionRepository,
    plan_to_domain,
    subscription_to_domain,
)


class SpendingService:
    def __init__(self, db: Session):
        self.db = db
        self.companies = CompanyRepository(db)
        self.plans = PlanRepository(db)
        self.subscriptions = SubscriptionRepository(db)

    def get_company_spending_statistics(
        self,
        company_id: uuid.UUID,
        include_subscription_ids: Sequence[uuid.UUID] = (),
    ) -> SpendingStatistics:
        """
        Recompute monthly spend from the current subscription set.

        include_subscription_ids adds pending subscriptions of the same
        company as a projection; terminated ones cannot be projected.
        """
        if self.companies.get(company_id) is None:
            raise InsufficientReference(f"Company {company_id} not found")

        active = [
            subscription_to_domain(r)
            for r in self.subscriptions.list_by_company(company_id, status=SubscriptionStatus.ACTIVE)
        ]

        wanted = list(dict.fromkeys(include_subscription_ids))
        projected_records = self.subscriptions.get_many(wanted)
        found = {r.id for r in projected_records}
        missing = [str(i) for i in wanted if i not in found]
        if missing:
            raise InsufficientReference(f"Subscriptions not found: {', '.join(missing)}")

        projected = []
        for record in projected_records:
            if record.company_id != company_id:
                raise InsufficientReference(f"Subscription {record.id} does not belong to company {company_id}")
            subscription = subscription_to_domain(record)
            if subscription.status == SubscriptionStatus.TERMINATED:
                raise InvalidSubscription(f"Subscription {record.id} is terminated and cannot be projected")
            projected.append(subscription)

        plan_ids = {s.plan_id for s in active} | {s.plan_id for s in projected}
        plans = {p.id: plan_to_domain(p) for p in self.plans.get_many(plan_ids)}

        return aggregate_spending(
            company_id, active, plans, projected=projected, default_currency=settings.default_currency
        )
