"""Onboarding step gate - turns collaborator events into lifecycle transitions"""

import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from benefits_gateway.config import settings
from benefits_gateway.domain.exceptions import InsufficientReference, InvalidDocument, InvalidSubscription
from benefits_gateway.domain.lifecycle import STEP_EVENTS, required_step, transition
from benefits_gateway.domain.models import (
    HealthcareSubscription,
    Role,
    StepOutcome,
    StepResult,
    StepStatus,
    StepType,
)
from benefits_gateway.infrastructure.clients.documents import DocumentIntakeClient
from benefits_gateway.infrastructure.clients.verification import IdentityVerificationClient
from benefits_gateway.infrastructure.database.repositories import (
    EmployeeRepository,
    SubscriptionRepository,
    subscription_to_domain,
)
from benefits_gateway.infrastructure.observability.logging import log_step_result
from benefits_gateway.infrastructure.observability.metrics import record_step_outcome

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/gif",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)


@dataclass(frozen=True)
class DependentIdentity:
    """Identity data submitted for a new spouse or child"""

    role: Role
    first_name: str
    last_name: str
    government_id: str
    birth_date: date


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    mime_type: str
    content: bytes


def validate_files(files: Sequence[UploadedFile]) -> None:
    if not files:
        raise InvalidDocument("At least one file is required")
    if len(files) > settings.max_upload_files:
        raise InvalidDocument(f"Maximum of {settings.max_upload_files} files allowed")
    for f in files:
        if len(f.content) > settings.max_upload_bytes:
            raise InvalidDocument(f"File {f.filename} exceeds {settings.max_upload_bytes} bytes")
        if f.mime_type not in ALLOWED_MIME_TYPES:
            raise InvalidDocument(f"File {f.filename} has unsupported type {f.mime_type}")


def _step_status(subscription: HealthcareSubscription, step_type: StepType) -> StepStatus:
    for step in subscription.steps:
        if step.step_type == step_type:
            return step.status
    raise InsufficientReference(f"Subscription {subscription.id} has no {step_type.value} step")


def precheck(subscription: HealthcareSubscription, step_type: StepType) -> Optional[StepOutcome]:
    """Outcome decided without writing anything, or None if the step may proceed"""
    if _step_status(subscription, step_type) == StepStatus.COMPLETED:
        return StepOutcome.ALREADY_COMPLETED
    if required_step(subscription.status) != step_type:
        return StepOutcome.INVALID_TRANSITION
    return None


class OnboardingGate:
    """
    Completes onboarding steps.

    A step completion and the status advance it causes are written in one
    transaction, each as a conditional update. Whoever loses a race sees
    already_completed and nothing is written on its behalf.
    """

    def __init__(self, db: Session):
        self.db = db
        self.subscriptions = SubscriptionRepository(db)
        self.employees = EmployeeRepository(db)

    def _load(self, subscription_id: uuid.UUID) -> HealthcareSubscription:
        record = self.subscriptions.get(subscription_id)
        if record is None:
            raise InsufficientReference(f"Subscription {subscription_id} not found")
        return subscription_to_domain(record)

    def _advance(self, subscription: HealthcareSubscription, step_type: StepType) -> StepOutcome:
        """Write step completion and status change; caller commits or rolls back"""
        outcome = precheck(subscription, step_type)
        if outcome is not None:
            return outcome

        result = transition(subscription.status, STEP_EVENTS[step_type])
        if not result.applied:
            return StepOutcome.INVALID_TRANSITION

        now = datetime.now(timezone.utc)
        if not self.subscriptions.complete_step_if_pending(subscription.id, step_type, now):
            return StepOutcome.ALREADY_COMPLETED
        if not self.subscriptions.compare_and_set_status(subscription.id, result.from_status, result.to_status):
            return StepOutcome.INVALID_TRANSITION
        return StepOutcome.COMPLETED

    def _finish(
        self,
        subscription_id: uuid.UUID,
        step_type: StepType,
        outcome: StepOutcome,
        reason: Optional[str] = None,
    ) -> StepResult:
        if outcome == StepOutcome.COMPLETED:
            self.db.commit()
        else:
            self.db.rollback()
            if outcome == StepOutcome.INVALID_TRANSITION:
                # A concurrent writer may have completed the step between precheck and update
                latest = self._load(subscription_id)
                if _step_status(latest, step_type) == StepStatus.COMPLETED:
                    outcome = StepOutcome.ALREADY_COMPLETED

        subscription = self._load(subscription_id)
        record_step_outcome(step_type.value, outcome.value)
        log_step_result(str(subscription_id), step_type.value, outcome.value, subscription.status.value)
        return StepResult(outcome=outcome, subscription=subscription, reason=reason)

    def complete_step(self, subscription_id: uuid.UUID, step_type: StepType) -> StepResult:
        """
        Record that an onboarding step finished.

        Returns:
            StepResult with outcome completed, already_completed (duplicate
            delivery) or invalid_transition (step not due in current status)
        """
        step_type = StepType(step_type)
        subscription = self._load(subscription_id)
        outcome = self._advance(subscription, step_type)
        return self._finish(subscription_id, step_type, outcome)

    def activate_plan(self, subscription_id: uuid.UUID) -> StepResult:
        return self.complete_step(subscription_id, StepType.PLAN_ACTIVATION)

    async def submit_demographics(
        self,
        subscription_id: uuid.UUID,
        dependents: Sequence[DependentIdentity],
        verifier: IdentityVerificationClient,
    ) -> StepResult:
        """
        Verify identities of every new dependent, then complete demographic verification.

        The submitted roles must match the subscription's unidentified items
        exactly. A rejection from the verifier leaves the subscription as is.

        Raises:
            CollaboratorUnavailable: verifier unreachable; nothing is written
        """
        step_type = StepType.DEMOGRAPHIC_VERIFICATION
        subscription = self._load(subscription_id)
        early = precheck(subscription, step_type)
        if early is not None:
            return self._finish(subscription_id, step_type, early)

        missing = Counter(item.role for item in subscription.items if item.demographic_id is None)
        submitted = Counter(Role(d.role) for d in dependents)
        if missing != submitted:
            raise InvalidSubscription(
                "Submitted dependents do not match unidentified items: "
                f"expected {dict((r.value, n) for r, n in missing.items())}, "
                f"got {dict((r.value, n) for r, n in submitted.items())}"
            )

        for dependent in dependents:
            verdict = await verifier.verify(
                dependent.first_name,
                dependent.last_name,
                dependent.government_id,
                dependent.birth_date,
            )
            if not verdict.verified:
                reason = verdict.reason or f"{dependent.role.value} identity not verified"
                return self._finish(subscription_id, step_type, StepOutcome.REJECTED, reason)

        for dependent in dependents:
            demographic = self.employees.create_demographic(
                dependent.first_name,
                dependent.last_name,
                dependent.government_id,
                dependent.birth_date,
            )
            self.subscriptions.attach_demographic(subscription_id, Role(dependent.role), demographic.id)

        outcome = self._advance(subscription, step_type)
        return self._finish(subscription_id, step_type, outcome)

    async def upload_documents(
        self,
        subscription_id: uuid.UUID,
        files: Sequence[UploadedFile],
        intake: DocumentIntakeClient,
    ) -> StepResult:
        """
        Hand documents to the intake service, then complete the upload step.

        Raises:
            InvalidDocument: count, size or MIME type limits broken
            CollaboratorUnavailable: intake service unreachable; nothing is written
        """
        step_type = StepType.DOCUMENT_UPLOAD
        validate_files(files)
        subscription = self._load(subscription_id)
        early = precheck(subscription, step_type)
        if early is not None:
            return self._finish(subscription_id, step_type, early)

        stored: List[tuple] = []
        for f in files:
            receipt = await intake.store_document(subscription_id, f.filename, f.mime_type, f.content)
            if not receipt.stored:
                reason = receipt.reason or f"{f.filename} was not accepted"
                return self._finish(subscription_id, step_type, StepOutcome.REJECTED, reason)
            stored.append((f, receipt.storage_key))

        for f, storage_key in stored:
            self.subscriptions.add_document(subscription_id, f.filename, f.mime_type, len(f.content), storage_key)

        outcome = self._advance(subscription, step_type)
        return self._finish(subscription_id, step_type, outcome)
