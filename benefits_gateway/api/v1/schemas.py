"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from benefits_gateway.domain.models import (
    CostBreakdown,
    HealthcareSubscription,
    PaymentStatus,
    Role,
    SpendingStatistics,
    StepOutcome,
    StepStatus,
    StepType,
    SubscriptionStatus,
    SubscriptionType,
)


class RoleCostSchema(BaseModel):
    cost_cents: int = Field(..., description="Monthly cost in cents")
    employer_percentage: Decimal = Field(..., description="Share paid by the company, 0-100")


class PlanCosts(BaseModel):
    employee: RoleCostSchema
    spouse: RoleCostSchema
    child: RoleCostSchema


class PlanRequest(BaseModel):
    """Request body for POST /v1/plans"""

    name: str = Field(..., min_length=1)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    costs: PlanCosts


class PlanResponse(BaseModel):
    plan_id: uuid.UUID
    name: str
    currency: str
    costs: PlanCosts


class SubscriptionItemSchema(BaseModel):
    role: Role
    demographic_id: Optional[uuid.UUID] = None
    employer_percentage_override: Optional[Decimal] = None


class SubscriptionRequest(BaseModel):
    """Request body for POST /v1/subscriptions"""

    employee_id: uuid.UUID
    plan_id: uuid.UUID
    items: List[SubscriptionItemSchema] = Field(..., min_length=1)
    type: Optional[SubscriptionType] = Field(None, description="Declared type; must match the item set")
    start_date: Optional[date] = None
    billing_anchor: Optional[int] = Field(None, description="Day of month to bill on, 1-31")


class StepSchema(BaseModel):
    type: StepType
    status: StepStatus
    completed_at: Optional[datetime] = None


class ItemCostSchema(BaseModel):
    role: Role
    total_cents: int
    employer_cents: int
    employee_cents: int


class CostSchema(BaseModel):
    total_cents: int
    employer_cents: int
    employee_cents: int
    items: List[ItemCostSchema]

    @classmethod
    def from_domain(cls, cost: CostBreakdown) -> "CostSchema":
        return cls(
            total_cents=cost.total_cents,
            employer_cents=cost.employer_cents,
            employee_cents=cost.employee_cents,
            items=[
                ItemCostSchema(
                    role=i.role,
                    total_cents=i.total_cents,
                    employer_cents=i.employer_cents,
                    employee_cents=i.employee_cents,
                )
                for i in cost.items
            ],
        )


class SubscriptionResponse(BaseModel):
    subscription_id: uuid.UUID
    employee_id: uuid.UUID
    company_id: uuid.UUID
    plan_id: uuid.UUID
    status: SubscriptionStatus
    start_date: date
    end_date: Optional[date] = None
    billing_anchor: int
    last_billed_on: Optional[date] = None
    items: List[SubscriptionItemSchema]
    steps: List[StepSchema]
    monthly_cost: Optional[CostSchema] = None

    @classmethod
    def from_domain(cls, sub: HealthcareSubscription, cost: Optional[CostBreakdown] = None) -> "SubscriptionResponse":
        return cls(
            subscription_id=sub.id,
            employee_id=sub.employee_id,
            company_id=sub.company_id,
            plan_id=sub.plan_id,
            status=sub.status,
            start_date=sub.start_date,
            end_date=sub.end_date,
            billing_anchor=sub.billing_anchor,
            last_billed_on=sub.last_billed_on,
            items=[
                SubscriptionItemSchema(
                    role=i.role,
                    demographic_id=i.demographic_id,
                    employer_percentage_override=i.employer_percentage_override,
                )
                for i in sub.items
            ],
            steps=[StepSchema(type=s.step_type, status=s.status, completed_at=s.completed_at) for s in sub.steps],
            monthly_cost=CostSchema.from_domain(cost) if cost is not None else None,
        )


class StepResponse(BaseModel):
    """Response for onboarding step endpoints"""

    outcome: StepOutcome
    reason: Optional[str] = None
    subscription: SubscriptionResponse


class DependentSchema(BaseModel):
    role: Role
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    government_id: str = Field(..., min_length=1)
    birth_date: date


class DemographicsRequest(BaseModel):
    dependents: List[DependentSchema] = Field(..., min_length=1)


class DocumentSchema(BaseModel):
    filename: str = Field(..., min_length=1)
    mime_type: str
    content_base64: str = Field(..., description="File bytes, base64 encoded")


class DocumentsRequest(BaseModel):
    files: List[DocumentSchema] = Field(..., min_length=1)


class TerminationRequest(BaseModel):
    end_date: Optional[date] = None


class TerminationResponse(BaseModel):
    applied: bool
    from_status: SubscriptionStatus
    to_status: SubscriptionStatus
    subscription: SubscriptionResponse


class BillingCycleRequest(BaseModel):
    cycle_date: Optional[date] = None


class DebitSchema(BaseModel):
    subscription_id: uuid.UUID
    employee_id: uuid.UUID
    amount_cents: int
    new_balance_cents: int
    sufficient: bool


class BillingFailureSchema(BaseModel):
    subscription_id: uuid.UUID
    error: str


class BillingCycleResponse(BaseModel):
    cycle_date: date
    debits: List[DebitSchema]
    failures: List[BillingFailureSchema]
    skipped: int


class EmployeeSpendingSchema(BaseModel):
    employee_id: uuid.UUID
    total_cents: int
    employer_cents: int
    employee_cents: int


class PlanSpendingSchema(BaseModel):
    plan_id: uuid.UUID
    subscription_count: int
    total_cents: int
    employer_cents: int
    employee_cents: int


class SpendingResponse(BaseModel):
    """Response for GET /v1/companies/{company_id}/spending"""

    company_id: uuid.UUID
    currency: str
    total_cents: int
    employer_cents: int
    employee_cents: int
    employees: List[EmployeeSpendingSchema]
    plans: List[PlanSpendingSchema]

    @classmethod
    def from_domain(cls, stats: SpendingStatistics) -> "SpendingResponse":
        return cls(
            company_id=stats.company_id,
            currency=stats.currency,
            total_cents=stats.total_cents,
            employer_cents=stats.employer_cents,
            employee_cents=stats.employee_cents,
            employees=[EmployeeSpendingSchema(**vars(e)) for e in stats.employees],
            plans=[PlanSpendingSchema(**vars(p)) for p in stats.plans],
        )


class EmployeeStandingSchema(BaseModel):
    employee_id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    balance_cents: Optional[int] = None
    currency: Optional[str] = None
    payment_status: PaymentStatus


class EmployeeListResponse(BaseModel):
    company_id: uuid.UUID
    employees: List[EmployeeStandingSchema]


class TransactionSchema(BaseModel):
    transaction_id: uuid.UUID
    kind: str
    amount_cents: int
    balance_after_cents: int
    sufficient: Optional[bool] = None
    subscription_id: Optional[uuid.UUID] = None
    created_at: datetime


class WalletResponse(BaseModel):
    """Response for GET /v1/employees/{employee_id}/wallet"""

    employee_id: uuid.UUID
    balance_cents: int
    currency: str
    payment_status: PaymentStatus
    transactions: List[TransactionSchema]


class CreditRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Top-up amount in cents")


class CreditResponse(BaseModel):
    employee_id: uuid.UUID
    balance_cents: int
    currency: str
