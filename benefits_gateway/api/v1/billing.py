"""POST /v1/billing/cycles - run the monthly wallet debit for a date"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from benefits_gateway.api.dependencies import get_request_id
from benefits_gateway.api.v1.errors import to_http_error
from benefits_gateway.api.v1.schemas import (
    BillingCycleRequest,
    BillingCycleResponse,
    BillingFailureSchema,
    DebitSchema,
)
from benefits_gateway.infrastructure.database.session import get_db
from benefits_gateway.services.billing import BillingService

router = APIRouter()


@router.post("/billing/cycles", response_model=BillingCycleResponse)
def run_billing_cycle(
    request: Request,
    request_body: Optional[BillingCycleRequest] = None,
    db: Session = Depends(get_db),
):
    """
    Debit every active subscription due on cycle_date (today by default).

    Safe to call again for the same date: subscriptions already billed
    this month are skipped.
    """
    cycle_date = (request_body.cycle_date if request_body else None) or date.today()
    try:
        report = BillingService(db).run_billing_cycle(cycle_date)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))

    return BillingCycleResponse(
        cycle_date=report.cycle_date,
        debits=[
            DebitSchema(
                subscription_id=d.subscription_id,
                employee_id=d.employee_id,
                amount_cents=d.amount_cents,
                new_balance_cents=d.new_balance_cents,
                sufficient=d.sufficient,
            )
            for d in report.debits
        ],
        failures=[BillingFailureSchema(subscription_id=f.subscription_id, error=f.error) for f in report.failures],
        skipped=report.skipped,
    )
