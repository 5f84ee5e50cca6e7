"""Employee wallet endpoints - balance, recent transactions and top-ups"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from benefits_gateway.api.dependencies import get_request_id
from benefits_gateway.api.v1.errors import to_http_error
from benefits_gateway.api.v1.schemas import CreditRequest, CreditResponse, TransactionSchema, WalletResponse
from benefits_gateway.domain.wallet import payment_status
from benefits_gateway.infrastructure.database.session import get_db
from benefits_gateway.services.wallets import WalletService

router = APIRouter()


def _parse_employee_id(employee_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(employee_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid employee ID format")


@router.get("/employees/{employee_id}/wallet", response_model=WalletResponse)
def get_wallet(employee_id: str, request: Request, limit: int = 20, db: Session = Depends(get_db)):
    employee_uuid = _parse_employee_id(employee_id)
    service = WalletService(db)
    try:
        wallet = service.get_wallet(employee_uuid)
        transactions = service.recent_transactions(employee_uuid, limit=limit)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))

    return WalletResponse(
        employee_id=employee_uuid,
        balance_cents=wallet.balance_cents,
        currency=wallet.currency_code,
        payment_status=payment_status(wallet.last_debit_sufficient),
        transactions=[
            TransactionSchema(
                transaction_id=t.id,
                kind=t.kind,
                amount_cents=t.amount_cents,
                balance_after_cents=t.balance_after_cents,
                sufficient=t.sufficient,
                subscription_id=t.subscription_id,
                created_at=t.created_at,
            )
            for t in transactions
        ],
    )


@router.post("/employees/{employee_id}/wallet/credits", response_model=CreditResponse)
def credit_wallet(employee_id: str, request_body: CreditRequest, request: Request, db: Session = Depends(get_db)):
    employee_uuid = _parse_employee_id(employee_id)
    try:
        balance = WalletService(db).credit(employee_uuid, request_body.amount_cents)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))
    return CreditResponse(employee_id=employee_uuid, balance_cents=balance.cents, currency=balance.currency)
