"""Translate domain exceptions raised by services into HTTP errors"""

from fastapi import HTTPException
from sqlalchemy.orm import Session

from benefits_gateway.domain.exceptions import (
    CollaboratorUnavailable,
    ConcurrentUpdateError,
    CurrencyMismatch,
    DomainException,
    InsufficientReference,
    InvalidDocument,
    InvalidPlanConfiguration,
    InvalidRole,
    InvalidSubscription,
    SubscriptionNotActive,
)
from benefits_gateway.infrastructure.observability.logging import logger

STATUS_CODES = {
    InvalidRole: 422,
    InvalidPlanConfiguration: 422,
    InvalidSubscription: 422,
    InvalidDocument: 422,
    CurrencyMismatch: 422,
    InsufficientReference: 404,
    SubscriptionNotActive: 409,
    ConcurrentUpdateError: 409,
    CollaboratorUnavailable: 503,
}


def status_for(error: DomainException) -> int:
    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(error, exc_type):
            return status_code
    return 500


def to_http_error(error: Exception, db: Session, request_id: str) -> HTTPException:
    """Roll back the session, log, and build the HTTPException to raise"""
    db.rollback()

    if not isinstance(error, DomainException):
        logger.error(f"Unexpected error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=500, detail="Internal server error")

    status_code = status_for(error)
    if isinstance(error, CollaboratorUnavailable):
        logger.error(f"Collaborator error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=503, detail=f"{error.collaborator} service unavailable")

    logger.warning(f"{type(error).__name__}: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=status_code, detail=str(error))
