"""Data access layer for benefits entities"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence
from sqlalchemy import and_
from sqlalchemy.orm import Session, selectinload
from benefits_gateway.infrastructure.database.models import (
    CompanyRecord,
    DemographicRecord,
    EmployeeRecord,
    PlanRecord,
    SubscriptionDocumentRecord,
    SubscriptionItemRecord,
    SubscriptionRecord,
    SubscriptionStepRecord,
    WalletRecord,
    WalletTransactionRecord,
)
from benefits_gateway.domain.models import (
    HealthcarePlan,
    HealthcareSubscription,
    Role,
    RoleCost,
    StepStatus,
    StepType,
    SubscriptionItem,
    SubscriptionStatus,
    SubscriptionStep,
    SubscriptionType,
    TransactionKind,
    Wallet,
)
from benefits_gateway.domain.money import Money
from benefits_gateway.utils.date_utils import month_start


def plan_to_domain(record: PlanRecord) -> HealthcarePlan:
    return HealthcarePlan(
        id=record.id,
        name=record.name,
        currency=record.currency_code,
        costs={
            Role.EMPLOYEE: RoleCost(record.cost_employee_cents, Decimal(record.pct_employee_paid_by_company)),
            Role.SPOUSE: RoleCost(record.cost_spouse_cents, Decimal(record.pct_spouse_paid_by_company)),
            Role.CHILD: RoleCost(record.cost_child_cents, Decimal(record.pct_child_paid_by_company)),
        },
    )


def subscription_to_domain(record: SubscriptionRecord) -> HealthcareSubscription:
    return HealthcareSubscription(
        id=record.id,
        employee_id=record.employee_id,
        company_id=record.company_id,
        plan_id=record.plan_id,
        items=[
            SubscriptionItem(
                role=Role(item.role),
                demographic_id=item.demographic_id,
                employer_percentage_override=Decimal(item.company_pct) if item.company_pct is not None else None,
            )
            for item in record.items
        ],
        status=SubscriptionStatus(record.status),
        start_date=record.start_date,
        end_date=record.end_date,
        billing_anchor=record.billing_anchor,
        last_billed_on=record.last_billed_on,
        steps=[
            SubscriptionStep(
                step_type=StepType(step.type),
                status=StepStatus(step.status),
                completed_at=step.completed_at,
            )
            for step in record.steps
        ],
    )


def wallet_to_domain(record: WalletRecord) -> Wallet:
    return Wallet(employee_id=record.employee_id, balance=Money(record.balance_cents, record.currency_code))


class CompanyRepository:
    """Repository for companies and their employees"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, company_id: uuid.UUID) -> Optional[CompanyRecord]:
        return self.db.get(CompanyRecord, company_id)

    def list_employees(self, company_id: uuid.UUID) -> List[EmployeeRecord]:
        return (
            self.db.query(EmployeeRecord)
            .options(selectinload(EmployeeRecord.wallet), selectinload(EmployeeRecord.demographic))
            .filter(EmployeeRecord.company_id == company_id)
            .order_by(EmployeeRecord.id)
            .all()
        )


class EmployeeRepository:
    """Repository for employees and identity records"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, employee_id: uuid.UUID) -> Optional[EmployeeRecord]:
        return self.db.get(EmployeeRecord, employee_id)

    def get_demographic(self, demographic_id: uuid.UUID) -> Optional[DemographicRecord]:
        return self.db.get(DemographicRecord, demographic_id)

    def create_demographic(
        self,
        first_name: str,
        last_name: str,
        government_id: str,
        birth_date: date,
    ) -> DemographicRecord:
        record = DemographicRecord(
            first_name=first_name,
            last_name=last_name,
            government_id=government_id,
            birth_date=birth_date,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return record


class PlanRepository:
    """Repository for healthcare plans"""

    def __init__(self, db: Session):
        self.db = db

    def create_plan(self, plan: HealthcarePlan) -> PlanRecord:
        record = PlanRecord(
            id=plan.id,
            name=plan.name,
            currency_code=plan.currency,
            cost_employee_cents=plan.costs[Role.EMPLOYEE].cost_cents,
            cost_spouse_cents=plan.costs[Role.SPOUSE].cost_cents,
            cost_child_cents=plan.costs[Role.CHILD].cost_cents,
            pct_employee_paid_by_company=plan.costs[Role.EMPLOYEE].employer_percentage,
            pct_spouse_paid_by_company=plan.costs[Role.SPOUSE].employer_percentage,
            pct_child_paid_by_company=plan.costs[Role.CHILD].employer_percentage,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get(self, plan_id: uuid.UUID) -> Optional[PlanRecord]:
        return self.db.get(PlanRecord, plan_id)

    def get_many(self, plan_ids: Iterable[uuid.UUID]) -> List[PlanRecord]:
        ids = list(set(plan_ids))
        if not ids:
            return []
        return self.db.query(PlanRecord).filter(PlanRecord.id.in_(ids)).all()


class SubscriptionRepository:
    """Repository for subscriptions, their items and onboarding steps"""

    def __init__(self, db: Session):
        self.db = db

    def create_subscription(
        self,
        subscription: HealthcareSubscription,
        subscription_type: SubscriptionType,
    ) -> SubscriptionRecord:
        """Persist subscription with items and step records"""
        record = SubscriptionRecord(
            id=subscription.id,
            employee_id=subscription.employee_id,
            company_id=subscription.company_id,
            plan_id=subscription.plan_id,
            type=subscription_type.value,
            status=subscription.status.value,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            billing_anchor=subscription.billing_anchor,
        )
        self.db.add(record)
        self.db.flush()

        for item in subscription.items:
            self.db.add(
                SubscriptionItemRecord(
                    subscription_id=record.id,
                    role=item.role.value,
                    demographic_id=item.demographic_id,
                    company_pct=item.employer_percentage_override,
                )
            )

        for step in subscription.steps:
            self.db.add(
                SubscriptionStepRecord(
                    subscription_id=record.id,
                    type=step.step_type.value,
                    status=step.status.value,
                    completed_at=step.completed_at,
                )
            )

        self.db.flush()
        return record

    def get(self, subscription_id: uuid.UUID) -> Optional[SubscriptionRecord]:
        """Fetch subscription with items and steps"""
        return (
            self.db.query(SubscriptionRecord)
            .options(selectinload(SubscriptionRecord.items), selectinload(SubscriptionRecord.steps))
            .filter(SubscriptionRecord.id == subscription_id)
            .populate_existing()
            .first()
        )

    def get_many(self, subscription_ids: Sequence[uuid.UUID]) -> List[SubscriptionRecord]:
        if not subscription_ids:
            return []
        return (
            self.db.query(SubscriptionRecord)
            .options(selectinload(SubscriptionRecord.items))
            .filter(SubscriptionRecord.id.in_(list(subscription_ids)))
            .all()
        )

    def list_by_company(
        self,
        company_id: uuid.UUID,
        status: Optional[SubscriptionStatus] = None,
    ) -> List[SubscriptionRecord]:
        query = (
            self.db.query(SubscriptionRecord)
            .options(selectinload(SubscriptionRecord.items))
            .filter(SubscriptionRecord.company_id == company_id)
        )
        if status is not None:
            query = query.filter(SubscriptionRecord.status == status.value)
        return query.order_by(SubscriptionRecord.id).all()

    def list_billable(self, cycle_date: date) -> List[SubscriptionRecord]:
        """Active subscriptions started on or before the cycle date"""
        return (
            self.db.query(SubscriptionRecord)
            .options(selectinload(SubscriptionRecord.items))
            .filter(
                SubscriptionRecord.status == SubscriptionStatus.ACTIVE.value,
                SubscriptionRecord.start_date <= cycle_date,
            )
            .order_by(SubscriptionRecord.id)
            .all()
        )

    def complete_step_if_pending(self, subscription_id: uuid.UUID, step_type: StepType, now: datetime) -> bool:
        """Mark a step completed unless someone else already did; True if this call won"""
        updated = (
            self.db.query(SubscriptionStepRecord)
            .filter(
                SubscriptionStepRecord.subscription_id == subscription_id,
                SubscriptionStepRecord.type == step_type.value,
                SubscriptionStepRecord.status == StepStatus.PENDING.value,
            )
            .update(
                {"status": StepStatus.COMPLETED.value, "completed_at": now},
                synchronize_session=False,
            )
        )
        return updated == 1

    def compare_and_set_status(
        self,
        subscription_id: uuid.UUID,
        expected: SubscriptionStatus,
        new: SubscriptionStatus,
        end_date: Optional[date] = None,
    ) -> bool:
        values = {"status": new.value}
        if end_date is not None:
            values["end_date"] = end_date
        updated = (
            self.db.query(SubscriptionRecord)
            .filter(SubscriptionRecord.id == subscription_id, SubscriptionRecord.status == expected.value)
            .update(values, synchronize_session=False)
        )
        return updated == 1

    def mark_billed(self, subscription_id: uuid.UUID, previous: Optional[date], cycle_date: date) -> bool:
        """
        Claim a billing cycle; fails if another run already moved last_billed_on.

        The claim only moves forward: a month at or before the last claimed
        one is never claimed again.
        """
        if previous is None:
            condition = SubscriptionRecord.last_billed_on.is_(None)
        else:
            condition = and_(
                SubscriptionRecord.last_billed_on == previous,
                SubscriptionRecord.last_billed_on < month_start(cycle_date),
            )
        updated = (
            self.db.query(SubscriptionRecord)
            .filter(
                SubscriptionRecord.id == subscription_id,
                SubscriptionRecord.status == SubscriptionStatus.ACTIVE.value,
                condition,
            )
            .update({"last_billed_on": cycle_date}, synchronize_session=False)
        )
        return updated == 1

    def attach_demographic(self, subscription_id: uuid.UUID, role: Role, demographic_id: uuid.UUID) -> bool:
        """Fill the first unidentified item of a role; False if none is left"""
        item = (
            self.db.query(SubscriptionItemRecord)
            .filter(
                SubscriptionItemRecord.subscription_id == subscription_id,
                SubscriptionItemRecord.role == role.value,
                SubscriptionItemRecord.demographic_id.is_(None),
            )
            .order_by(SubscriptionItemRecord.created_at, SubscriptionItemRecord.id)
            .first()
        )
        if item is None:
            return False
        item.demographic_id = demographic_id
        self.db.flush()
        return True

    def add_document(
        self,
        subscription_id: uuid.UUID,
        original_name: str,
        mime_type: str,
        file_size_bytes: int,
        storage_key: str,
    ) -> SubscriptionDocumentRecord:
        record = SubscriptionDocumentRecord(
            subscription_id=subscription_id,
            original_name=original_name,
            mime_type=mime_type,
            file_size_bytes=file_size_bytes,
            storage_key=storage_key,
        )
        self.db.add(record)
        self.db.flush()
        return record


class WalletRepository:
    """Repository for wallets and their ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_employee(self, employee_id: uuid.UUID) -> Optional[WalletRecord]:
        return (
            self.db.query(WalletRecord)
            .filter(WalletRecord.employee_id == employee_id)
            .populate_existing()
            .first()
        )

    def compare_and_set_balance(
        self,
        wallet_id: uuid.UUID,
        expected_cents: int,
        new_cents: int,
        last_debit_sufficient: Optional[bool] = None,
    ) -> bool:
        """Write the new balance only if nobody changed it since it was read"""
        values = {"balance_cents": new_cents}
        if last_debit_sufficient is not None:
            values["last_debit_sufficient"] = last_debit_sufficient
        updated = (
            self.db.query(WalletRecord)
            .filter(WalletRecord.id == wallet_id, WalletRecord.balance_cents == expected_cents)
            .update(values, synchronize_session=False)
        )
        return updated == 1

    def add_transaction(
        self,
        wallet_id: uuid.UUID,
        kind: TransactionKind,
        amount_cents: int,
        balance_after_cents: int,
        sufficient: Optional[bool] = None,
        subscription_id: Optional[uuid.UUID] = None,
    ) -> WalletTransactionRecord:
        record = WalletTransactionRecord(
            wallet_id=wallet_id,
            subscription_id=subscription_id,
            kind=kind.value,
            amount_cents=amount_cents,
            balance_after_cents=balance_after_cents,
            sufficient=sufficient,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def recent_transactions(self, wallet_id: uuid.UUID, limit: int = 20) -> List[WalletTransactionRecord]:
        return (
            self.db.query(WalletTransactionRecord)
            .filter(WalletTransactionRecord.wallet_id == wallet_id)
            .order_by(WalletTransactionRecord.created_at.desc())
            .limit(limit)
            .all()
        )
