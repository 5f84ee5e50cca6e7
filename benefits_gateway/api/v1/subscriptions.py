"""Subscription endpoints - enrollment, onboarding steps and termination"""

import base64
import binascii
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from benefits_gateway.api.dependencies import get_document_client, get_request_id, get_verification_client
from benefits_gateway.api.v1.errors import to_http_error
from benefits_gateway.api.v1.schemas import (
    DemographicsRequest,
    DocumentsRequest,
    StepResponse,
    SubscriptionRequest,
    SubscriptionResponse,
    TerminationRequest,
    TerminationResponse,
)
from benefits_gateway.domain.models import StepOutcome, StepResult, StepType, SubscriptionItem
from benefits_gateway.infrastructure.clients.documents import DocumentIntakeClient
from benefits_gateway.infrastructure.clients.verification import IdentityVerificationClient
from benefits_gateway.infrastructure.database.session import get_db
from benefits_gateway.services.onboarding import DependentIdentity, OnboardingGate, UploadedFile
from benefits_gateway.services.subscriptions import SubscriptionService

router = APIRouter()

STEP_STATUS_CODES = {
    StepOutcome.COMPLETED: 200,
    StepOutcome.ALREADY_COMPLETED: 200,
    StepOutcome.INVALID_TRANSITION: 409,
    StepOutcome.REJECTED: 422,
}


def _parse_id(subscription_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(subscription_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid subscription ID format")


def _step_response(result: StepResult) -> JSONResponse:
    body = StepResponse(
        outcome=result.outcome,
        reason=result.reason,
        subscription=SubscriptionResponse.from_domain(result.subscription),
    )
    return JSONResponse(status_code=STEP_STATUS_CODES[result.outcome], content=body.model_dump(mode="json"))


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=201)
def create_subscription(request_body: SubscriptionRequest, request: Request, db: Session = Depends(get_db)):
    """
    Enroll an employee and optional dependents in a plan.

    The subscription starts in demographic_verification_pending when any
    dependent lacks an identity record, otherwise in document_upload_pending.
    """
    request_id = get_request_id(request)
    items = [
        SubscriptionItem(
            role=i.role,
            demographic_id=i.demographic_id,
            employer_percentage_override=i.employer_percentage_override,
        )
        for i in request_body.items
    ]
    service = SubscriptionService(db)
    try:
        subscription = service.create_subscription(
            employee_id=request_body.employee_id,
            plan_id=request_body.plan_id,
            items=items,
            declared_type=request_body.type,
            start_date=request_body.start_date,
            billing_anchor=request_body.billing_anchor,
        )
        cost = service.monthly_cost(subscription)
    except Exception as e:
        raise to_http_error(e, db, request_id)
    return SubscriptionResponse.from_domain(subscription, cost)


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionResponse)
def get_subscription(subscription_id: str, request: Request, db: Session = Depends(get_db)):
    sub_uuid = _parse_id(subscription_id)
    service = SubscriptionService(db)
    try:
        subscription = service.get_subscription(sub_uuid)
        cost = service.monthly_cost(subscription)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))
    return SubscriptionResponse.from_domain(subscription, cost)


@router.post("/subscriptions/{subscription_id}/steps/{step_type}", response_model=StepResponse)
def complete_step(subscription_id: str, step_type: StepType, request: Request, db: Session = Depends(get_db)):
    """
    Collaborator webhook: an onboarding step finished.

    Duplicate deliveries answer 200 with outcome already_completed; a step
    that is not due in the current status answers 409.
    """
    sub_uuid = _parse_id(subscription_id)
    try:
        result = OnboardingGate(db).complete_step(sub_uuid, step_type)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))
    return _step_response(result)


@router.post("/subscriptions/{subscription_id}/demographics", response_model=StepResponse)
async def submit_demographics(
    subscription_id: str,
    request_body: DemographicsRequest,
    request: Request,
    db: Session = Depends(get_db),
    verifier: IdentityVerificationClient = Depends(get_verification_client),
):
    sub_uuid = _parse_id(subscription_id)
    dependents = [
        DependentIdentity(
            role=d.role,
            first_name=d.first_name,
            last_name=d.last_name,
            government_id=d.government_id,
            birth_date=d.birth_date,
        )
        for d in request_body.dependents
    ]
    try:
        result = await OnboardingGate(db).submit_demographics(sub_uuid, dependents, verifier)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))
    return _step_response(result)


@router.post("/subscriptions/{subscription_id}/documents", response_model=StepResponse)
async def upload_documents(
    subscription_id: str,
    request_body: DocumentsRequest,
    request: Request,
    db: Session = Depends(get_db),
    intake: DocumentIntakeClient = Depends(get_document_client),
):
    sub_uuid = _parse_id(subscription_id)
    try:
        files = [
            UploadedFile(
                filename=f.filename,
                mime_type=f.mime_type,
                content=base64.b64decode(f.content_base64, validate=True),
            )
            for f in request_body.files
        ]
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="File content is not valid base64")

    try:
        result = await OnboardingGate(db).upload_documents(sub_uuid, files, intake)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))
    return _step_response(result)


@router.post("/subscriptions/{subscription_id}/activation", response_model=StepResponse)
def activate_plan(subscription_id: str, request: Request, db: Session = Depends(get_db)):
    sub_uuid = _parse_id(subscription_id)
    try:
        result = OnboardingGate(db).activate_plan(sub_uuid)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))
    return _step_response(result)


@router.post("/subscriptions/{subscription_id}/termination", response_model=TerminationResponse)
def terminate_subscription(
    subscription_id: str,
    request: Request,
    request_body: Optional[TerminationRequest] = None,
    db: Session = Depends(get_db),
):
    """Terminate from any state; an already terminated subscription answers 409"""
    sub_uuid = _parse_id(subscription_id)
    end_date = request_body.end_date if request_body else None
    try:
        result = SubscriptionService(db).terminate_subscription(sub_uuid, on=end_date)
    except Exception as e:
        raise to_http_error(e, db, get_request_id(request))

    body = TerminationResponse(
        applied=result.applied,
        from_status=result.from_status,
        to_status=result.to_status,
        subscription=SubscriptionResponse.from_domain(result.subscription),
    )
    return JSONResponse(status_code=200 if result.applied else 409, content=body.model_dump(mode="json"))
