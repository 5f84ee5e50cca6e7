"""Company-scoped reads - spending statistics and employee payment standing"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from benefits_gateway.api.dependencies import get_request_id
from benefits_gateway.api.v1.errors import to_http_error
from benefits_gateway.api.v1.schemas import EmployeeListResponse, EmployeeStandingSchema, SpendingResponse
from benefits_gateway.domain.models import PaymentStatus
from benefits_gateway.infrastructure.database.session import get_db
from benefits_gateway.services.spending import SpendingService
from benefits_gateway.services.wallets import WalletService

router = APIRouter()


def _parse_company_id(company_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(company_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid company ID format")


@router.get("/companies/{company_id}/spending", response_model=SpendingResponse)
def get_company_spending(
    company_id: str,
    request: Request,
    include_subscription_id: List[uuid.UUID] = Query(default=[]),
    db: Session = Depends(get_db),
):
    """
    Monthly spend of a company's active subscriptions.

    include_subscription_id (repeatable) projects pending subscriptions
    into the totals.
    """
    company_uuid = _parse_company_id(company_id)
    try:
        stats = SpendingService(db).get_company_spending_statistics(company_uuid, include_subscription_id)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))
    return SpendingResponse.from_domain(stats)


@router.get("/companies/{company_id}/employees", response_model=EmployeeListResponse)
def list_employees(
    company_id: str,
    request: Request,
    payment_status: Optional[PaymentStatus] = None,
    db: Session = Depends(get_db),
):
    company_uuid = _parse_company_id(company_id)
    try:
        standings = WalletService(db).list_employees_by_payment_status(company_uuid, payment_status)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))

    return EmployeeListResponse(
        company_id=company_uuid,
        employees=[EmployeeStandingSchema(**vars(s)) for s in standings],
    )
