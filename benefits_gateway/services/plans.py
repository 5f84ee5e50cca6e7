"""Plan catalogue operations"""

import uuid
from typing import Dict, Optional

from sqlalchemy.orm import Session

from benefits_gateway.config import settings
from benefits_gateway.domain.costs import validate_plan
from benefits_gateway.domain.exceptions import InsufficientReference
from benefits_gateway.domain.models import HealthcarePlan, Role, RoleCost
from benefits_gateway.infrastructure.database.repositories import PlanRepository, plan_to_domain


class PlanService:
    def __init__(self, db: Session):
        self.db = db
        self.plans = PlanRepository(db)

    def create_plan(
        self,
        name: str,
        costs: Dict[Role, RoleCost],
        currency: Optional[str] = None,
    ) -> HealthcarePlan:
        """Validate and store a plan; bad costs or percentages never reach the database"""
        currency = (currency or settings.default_currency).upper()
        plan = HealthcarePlan(id=uuid.uuid4(), name=name, costs=dict(costs), currency=currency)
        validate_plan(plan)
        self.plans.create_plan(plan)
        self.db.commit()
        return plan

    def get_plan(self, plan_id: uuid.UUID) -> HealthcarePlan:
        record = self.plans.get(plan_id)
        if record is None:
            raise InsufficientReference(f"Plan {plan_id} not found")
        return plan_to_domain(record)
