"""POST /v1/plans and GET /v1/plans/{plan_id} - healthcare plan catalogue"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from benefits_gateway.api.dependencies import get_request_id
from benefits_gateway.api.v1.errors import to_http_error
from benefits_gateway.api.v1.schemas import PlanCosts, PlanRequest, PlanResponse, RoleCostSchema
from benefits_gateway.domain.models import HealthcarePlan, Role, RoleCost
from benefits_gateway.infrastructure.database.session import get_db
from benefits_gateway.services.plans import PlanService

router = APIRouter()


def _to_response(plan: HealthcarePlan) -> PlanResponse:
    costs = {
        role.value: RoleCostSchema(cost_cents=c.cost_cents, employer_percentage=c.employer_percentage)
        for role, c in plan.costs.items()
    }
    return PlanResponse(plan_id=plan.id, name=plan.name, currency=plan.currency, costs=PlanCosts(**costs))


@router.post("/plans", response_model=PlanResponse, status_code=201)
def create_plan(request_body: PlanRequest, request: Request, db: Session = Depends(get_db)):
    request_id = get_request_id(request)
    costs = {
        Role(role): RoleCost(cost_cents=c.cost_cents, employer_percentage=c.employer_percentage)
        for role, c in (
            ("employee", request_body.costs.employee),
            ("spouse", request_body.costs.spouse),
            ("child", request_body.costs.child),
        )
    }
    try:
        plan = PlanService(db).create_plan(request_body.name, costs, currency=request_body.currency)
    except Exception as e:
        raise to_http_error(e, db, request_id)
    return _to_response(plan)


@router.get("/plans/{plan_id}", response_model=PlanResponse)
def get_plan(plan_id: str, request: Request, db: Session = Depends(get_db)):
    try:
        plan_uuid = uuid.UUID(plan_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid plan ID format")

    try:
        plan = PlanService(db).get_plan(plan_uuid)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))
    return _to_response(plan)
