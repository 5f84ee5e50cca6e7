"""Integration tests for subscription creation and the onboarding step gate"""

import asyncio
import uuid
import pytest
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.orm import Session
from benefits_gateway.domain.exceptions import (
    CollaboratorUnavailable,
    InsufficientReference,
    InvalidDocument,
    InvalidPlanConfiguration,
    InvalidSubscription,
)
from benefits_gateway.domain.models import (
    Role,
    StepOutcome,
    StepStatus,
    StepType,
    SubscriptionItem,
    SubscriptionStatus,
    SubscriptionType,
)
from benefits_gateway.infrastructure.clients.documents import DocumentReceipt
from benefits_gateway.infrastructure.clients.verification import VerificationOutcome
from benefits_gateway.infrastructure.database.models import SubscriptionDocumentRecord
from benefits_gateway.infrastructure.database.repositories import SubscriptionRepository
from benefits_gateway.services.onboarding import DependentIdentity, OnboardingGate, UploadedFile
from benefits_gateway.services.subscriptions import SubscriptionService

SPOUSE_IDENTITY = DependentIdentity(
    role=Role.SPOUSE,
    first_name="John",
    last_name="Doe",
    government_id="GOV-123",
    birth_date=date(1988, 2, 3),
)
PDF = UploadedFile(filename="id.pdf", mime_type="application/pdf", content=b"%PDF-1.4 test")


def _steps(subscription):
    return {s.step_type: s.status for s in subscription.steps}


def test_individual_subscription_starts_at_document_upload(db: Session, employee, plan):
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])

    assert sub.status == SubscriptionStatus.DOCUMENT_UPLOAD_PENDING
    assert sub.items[0].demographic_id == employee.demographic_id
    assert _steps(sub) == {
        StepType.DEMOGRAPHIC_VERIFICATION: StepStatus.COMPLETED,
        StepType.DOCUMENT_UPLOAD: StepStatus.PENDING,
        StepType.PLAN_ACTIVATION: StepStatus.PENDING,
    }
    assert sub.company_id == employee.company_id


def test_new_dependent_starts_at_demographic_verification(db: Session, employee, plan):
    items = [SubscriptionItem(Role.EMPLOYEE), SubscriptionItem(Role.SPOUSE)]

    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, items, declared_type=SubscriptionType.FAMILY)

    assert sub.status == SubscriptionStatus.DEMOGRAPHIC_VERIFICATION_PENDING


def test_known_dependent_skips_demographic_verification(db: Session, employee, plan, spouse_demographic):
    items = [SubscriptionItem(Role.EMPLOYEE), SubscriptionItem(Role.SPOUSE, demographic_id=spouse_demographic.id)]

    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, items)

    assert sub.status == SubscriptionStatus.DOCUMENT_UPLOAD_PENDING


def test_create_rejects_mismatched_declared_type(db: Session, employee, plan):
    with pytest.raises(InvalidSubscription):
        SubscriptionService(db).create_subscription(
            employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)], declared_type=SubscriptionType.FAMILY
        )


def test_create_rejects_unknown_references(db: Session, employee, plan):
    service = SubscriptionService(db)
    with pytest.raises(InsufficientReference):
        service.create_subscription(uuid.uuid4(), plan.id, [SubscriptionItem(Role.EMPLOYEE)])
    with pytest.raises(InsufficientReference):
        service.create_subscription(employee.id, uuid.uuid4(), [SubscriptionItem(Role.EMPLOYEE)])
    with pytest.raises(InsufficientReference):
        service.create_subscription(
            employee.id,
            plan.id,
            [SubscriptionItem(Role.EMPLOYEE), SubscriptionItem(Role.CHILD, demographic_id=uuid.uuid4())],
        )


def test_create_rejects_bad_override_and_anchor(db: Session, employee, plan):
    service = SubscriptionService(db)
    with pytest.raises(InvalidPlanConfiguration):
        service.create_subscription(
            employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE, employer_percentage_override=Decimal("150"))]
        )
    with pytest.raises(InvalidSubscription):
        service.create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)], billing_anchor=32)


def test_monthly_cost_of_family_subscription(db: Session, employee, plan, spouse_demographic):
    service = SubscriptionService(db)
    items = [
        SubscriptionItem(Role.EMPLOYEE),
        SubscriptionItem(Role.SPOUSE, demographic_id=spouse_demographic.id),
        SubscriptionItem(Role.CHILD),
    ]
    sub = service.create_subscription(employee.id, plan.id, items)

    cost = service.monthly_cost(sub)

    assert (cost.total_cents, cost.employer_cents, cost.employee_cents) == (24000, 18000, 6000)


def test_step_completion_advances_status(db: Session, employee, plan):
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])
    gate = OnboardingGate(db)

    result = gate.complete_step(sub.id, StepType.DOCUMENT_UPLOAD)

    assert result.outcome == StepOutcome.COMPLETED
    assert result.subscription.status == SubscriptionStatus.PLAN_ACTIVATION_PENDING
    assert _steps(result.subscription)[StepType.DOCUMENT_UPLOAD] == StepStatus.COMPLETED

    result = gate.activate_plan(sub.id)

    assert result.outcome == StepOutcome.COMPLETED
    assert result.subscription.status == SubscriptionStatus.ACTIVE


def test_duplicate_step_is_already_completed(db: Session, employee, plan):
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])
    gate = OnboardingGate(db)
    gate.complete_step(sub.id, StepType.DOCUMENT_UPLOAD)

    result = gate.complete_step(sub.id, StepType.DOCUMENT_UPLOAD)

    assert result.outcome == StepOutcome.ALREADY_COMPLETED
    assert result.subscription.status == SubscriptionStatus.PLAN_ACTIVATION_PENDING


def test_losing_a_completion_race_is_already_completed(db: Session, employee, plan):
    """Both deliveries pass the status check; only the first one writes"""
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])
    gate = OnboardingGate(db)
    stale = gate._load(sub.id)

    with patch.object(
        SubscriptionRepository,
        "compare_and_set_status",
        autospec=True,
        side_effect=SubscriptionRepository.compare_and_set_status,
    ) as set_status:
        winner = gate.complete_step(sub.id, StepType.DOCUMENT_UPLOAD)
        outcome = gate._advance(stale, StepType.DOCUMENT_UPLOAD)
        loser = gate._finish(sub.id, StepType.DOCUMENT_UPLOAD, outcome)

    assert winner.outcome == StepOutcome.COMPLETED
    assert outcome == StepOutcome.ALREADY_COMPLETED
    assert loser.outcome == StepOutcome.ALREADY_COMPLETED
    assert loser.subscription.status == SubscriptionStatus.PLAN_ACTIVATION_PENDING
    assert set_status.call_count == 1


def test_skipped_step_reports_already_completed(db: Session, employee, plan):
    """Demographic verification was never needed, so a late webhook is a duplicate"""
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])

    result = OnboardingGate(db).complete_step(sub.id, StepType.DEMOGRAPHIC_VERIFICATION)

    assert result.outcome == StepOutcome.ALREADY_COMPLETED
    assert result.subscription.status == SubscriptionStatus.DOCUMENT_UPLOAD_PENDING


def test_out_of_order_step_is_invalid_transition(db: Session, employee, plan):
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])

    result = OnboardingGate(db).activate_plan(sub.id)

    assert result.outcome == StepOutcome.INVALID_TRANSITION
    assert result.subscription.status == SubscriptionStatus.DOCUMENT_UPLOAD_PENDING
    assert _steps(result.subscription)[StepType.PLAN_ACTIVATION] == StepStatus.PENDING


def test_step_on_terminated_subscription_is_invalid(db: Session, employee, plan):
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])
    SubscriptionService(db).terminate_subscription(sub.id)

    result = OnboardingGate(db).complete_step(sub.id, StepType.DOCUMENT_UPLOAD)

    assert result.outcome == StepOutcome.INVALID_TRANSITION
    assert result.subscription.status == SubscriptionStatus.TERMINATED


def test_unknown_subscription_raises(db: Session):
    with pytest.raises(InsufficientReference):
        OnboardingGate(db).complete_step(uuid.uuid4(), StepType.DOCUMENT_UPLOAD)


def test_demographics_verified_and_attached(db: Session, employee, plan):
    items = [SubscriptionItem(Role.EMPLOYEE), SubscriptionItem(Role.SPOUSE)]
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, items)
    verifier = MagicMock()
    verifier.verify = AsyncMock(return_value=VerificationOutcome(verified=True))

    result = asyncio.run(OnboardingGate(db).submit_demographics(sub.id, [SPOUSE_IDENTITY], verifier))

    assert result.outcome == StepOutcome.COMPLETED
    assert result.subscription.status == SubscriptionStatus.DOCUMENT_UPLOAD_PENDING
    assert all(item.demographic_id is not None for item in result.subscription.items)
    verifier.verify.assert_awaited_once_with("John", "Doe", "GOV-123", date(1988, 2, 3))


def test_demographics_rejected_leaves_subscription_pending(db: Session, employee, plan):
    items = [SubscriptionItem(Role.EMPLOYEE), SubscriptionItem(Role.SPOUSE)]
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, items)
    verifier = MagicMock()
    verifier.verify = AsyncMock(return_value=VerificationOutcome(verified=False, reason="identity mismatch"))

    result = asyncio.run(OnboardingGate(db).submit_demographics(sub.id, [SPOUSE_IDENTITY], verifier))

    assert result.outcome == StepOutcome.REJECTED
    assert result.reason == "identity mismatch"
    assert result.subscription.status == SubscriptionStatus.DEMOGRAPHIC_VERIFICATION_PENDING
    spouse = next(i for i in result.subscription.items if i.role == Role.SPOUSE)
    assert spouse.demographic_id is None


def test_demographics_must_cover_every_new_dependent(db: Session, employee, plan):
    items = [SubscriptionItem(Role.EMPLOYEE), SubscriptionItem(Role.SPOUSE), SubscriptionItem(Role.CHILD)]
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, items)
    verifier = MagicMock()
    verifier.verify = AsyncMock(return_value=VerificationOutcome(verified=True))

    with pytest.raises(InvalidSubscription):
        asyncio.run(OnboardingGate(db).submit_demographics(sub.id, [SPOUSE_IDENTITY], verifier))
    verifier.verify.assert_not_awaited()


def test_verifier_outage_propagates(db: Session, employee, plan):
    items = [SubscriptionItem(Role.EMPLOYEE), SubscriptionItem(Role.SPOUSE)]
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, items)
    verifier = MagicMock()
    verifier.verify = AsyncMock(side_effect=CollaboratorUnavailable("identity_verification", "timeout"))

    with pytest.raises(CollaboratorUnavailable):
        asyncio.run(OnboardingGate(db).submit_demographics(sub.id, [SPOUSE_IDENTITY], verifier))


def test_documents_stored_and_step_completed(db: Session, employee, plan):
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])
    intake = MagicMock()
    intake.store_document = AsyncMock(return_value=DocumentReceipt(stored=True, storage_key="docs/abc"))

    result = asyncio.run(OnboardingGate(db).upload_documents(sub.id, [PDF], intake))

    assert result.outcome == StepOutcome.COMPLETED
    assert result.subscription.status == SubscriptionStatus.PLAN_ACTIVATION_PENDING
    documents = db.query(SubscriptionDocumentRecord).filter_by(subscription_id=sub.id).all()
    assert [(d.original_name, d.storage_key) for d in documents] == [("id.pdf", "docs/abc")]


def test_failed_document_rejects_upload(db: Session, employee, plan):
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])
    intake = MagicMock()
    intake.store_document = AsyncMock(return_value=DocumentReceipt(stored=False, reason="unreadable"))

    result = asyncio.run(OnboardingGate(db).upload_documents(sub.id, [PDF], intake))

    assert result.outcome == StepOutcome.REJECTED
    assert result.subscription.status == SubscriptionStatus.DOCUMENT_UPLOAD_PENDING
    assert db.query(SubscriptionDocumentRecord).count() == 0


def test_upload_limits_enforced(db: Session, employee, plan):
    sub = SubscriptionService(db).create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)])
    intake = MagicMock()
    intake.store_document = AsyncMock()
    gate = OnboardingGate(db)

    with pytest.raises(InvalidDocument):
        asyncio.run(gate.upload_documents(sub.id, [], intake))
    with pytest.raises(InvalidDocument):
        asyncio.run(gate.upload_documents(sub.id, [UploadedFile("run.exe", "application/x-msdownload", b"MZ")], intake))
    intake.store_document.assert_not_awaited()


def test_terminate_is_applied_once(db: Session, employee, plan):
    service = SubscriptionService(db)
    sub = service.create_subscription(
        employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)], start_date=date(2025, 1, 1)
    )

    first = service.terminate_subscription(sub.id, on=date(2025, 6, 30))
    second = service.terminate_subscription(sub.id)

    assert first.applied is True
    assert first.from_status == SubscriptionStatus.DOCUMENT_UPLOAD_PENDING
    assert first.subscription.status == SubscriptionStatus.TERMINATED
    assert first.subscription.end_date == date(2025, 6, 30)
    assert second.applied is False
    assert second.to_status == SubscriptionStatus.TERMINATED
    assert second.subscription.end_date == date(2025, 6, 30)


def test_terminate_rejects_end_before_start(db: Session, employee, plan):
    service = SubscriptionService(db)
    sub = service.create_subscription(
        employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)], start_date=date(2025, 3, 1)
    )

    with pytest.raises(InvalidSubscription):
        service.terminate_subscription(sub.id, on=date(2025, 2, 28))

    unchanged = service.get_subscription(sub.id)
    assert unchanged.status == SubscriptionStatus.DOCUMENT_UPLOAD_PENDING
    assert unchanged.end_date is None
    assert service.terminate_subscription(sub.id, on=date(2025, 3, 1)).applied is True


def test_terminate_without_date_never_ends_before_start(db: Session, employee, plan):
    service = SubscriptionService(db)
    future = date.today() + timedelta(days=40)
    sub = service.create_subscription(employee.id, plan.id, [SubscriptionItem(Role.EMPLOYEE)], start_date=future)

    result = service.terminate_subscription(sub.id)

    assert result.subscription.end_date == future
