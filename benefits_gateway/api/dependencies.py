"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from benefits_gateway.infrastructure.clients.documents import DocumentIntakeClient
from benefits_gateway.infrastructure.clients.verification import IdentityVerificationClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_document_client() -> DocumentIntakeClient:
    """Provide document intake client instance"""
    return DocumentIntakeClient()


def get_verification_client() -> IdentityVerificationClient:
    """Provide identity verification client instance"""
    return IdentityVerificationClient()
