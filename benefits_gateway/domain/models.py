"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from benefits_gateway.domain.money import Money


class Role(str, Enum):
    EMPLOYEE = "employee"
    SPOUSE = "spouse"
    CHILD = "child"


class SubscriptionType(str, Enum):
    INDIVIDUAL = "individual"
    FAMILY = "family"


class SubscriptionStatus(str, Enum):
    DEMOGRAPHIC_VERIFICATION_PENDING = "demographic_verification_pending"
    DOCUMENT_UPLOAD_PENDING = "document_upload_pending"
    PLAN_ACTIVATION_PENDING = "plan_activation_pending"
    ACTIVE = "active"
    TERMINATED = "terminated"


class StepType(str, Enum):
    DEMOGRAPHIC_VERIFICATION = "demographic_verification"
    DOCUMENT_UPLOAD = "document_upload"
    PLAN_ACTIVATION = "plan_activation"


class StepStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class StepOutcome(str, Enum):
    COMPLETED = "completed"
    ALREADY_COMPLETED = "already_completed"
    INVALID_TRANSITION = "invalid_transition"
    REJECTED = "rejected"


class TransactionKind(str, Enum):
    SUBSCRIPTION_PAYMENT = "subscription_payment"
    TOP_UP = "top_up"


class PaymentStatus(str, Enum):
    SUFFICIENT = "sufficient"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class RoleCost:
    """Monthly price of one covered role and the share the employer pays"""

    cost_cents: int
    employer_percentage: Decimal


@dataclass(frozen=True)
class HealthcarePlan:
    id: uuid.UUID
    name: str
    costs: Dict[Role, RoleCost]
    currency: str = "USD"


@dataclass(frozen=True)
class SubscriptionItem:
    """One covered member. demographic_id is None for a dependent not yet identified."""

    role: Role
    demographic_id: Optional[uuid.UUID] = None
    employer_percentage_override: Optional[Decimal] = None


@dataclass
class SubscriptionStep:
    step_type: StepType
    status: StepStatus = StepStatus.PENDING
    completed_at: Optional[datetime] = None


@dataclass
class HealthcareSubscription:
    id: uuid.UUID
    employee_id: uuid.UUID
    company_id: uuid.UUID
    plan_id: uuid.UUID
    items: List[SubscriptionItem]
    status: SubscriptionStatus
    start_date: date
    billing_anchor: int
    end_date: Optional[date] = None
    last_billed_on: Optional[date] = None
    steps: List[SubscriptionStep] = field(default_factory=list)


@dataclass
class Wallet:
    employee_id: uuid.UUID
    balance: Money


@dataclass(frozen=True)
class ItemCost:
    role: Role
    total_cents: int
    employer_cents: int
    employee_cents: int


@dataclass(frozen=True)
class CostBreakdown:
    """Monthly cost of a subscription, split between employer and employee"""

    total_cents: int
    employer_cents: int
    employee_cents: int
    items: Tuple[ItemCost, ...] = ()


@dataclass
class EmployeeSpending:
    employee_id: uuid.UUID
    total_cents: int = 0
    employer_cents: int = 0
    employee_cents: int = 0


@dataclass
class PlanSpending:
    plan_id: uuid.UUID
    subscription_count: int = 0
    total_cents: int = 0
    employer_cents: int = 0
    employee_cents: int = 0


@dataclass(frozen=True)
class SpendingStatistics:
    """Company-wide monthly spend snapshot"""

    company_id: uuid.UUID
    currency: str
    total_cents: int
    employer_cents: int
    employee_cents: int
    employees: Tuple[EmployeeSpending, ...]
    plans: Tuple[PlanSpending, ...]


@dataclass(frozen=True)
class DebitOutcome:
    new_balance: Money
    sufficient: bool


@dataclass(frozen=True)
class DebitResult:
    """Outcome of one subscription's billing-cycle debit"""

    subscription_id: uuid.UUID
    employee_id: uuid.UUID
    amount_cents: int
    new_balance_cents: int
    sufficient: bool


@dataclass(frozen=True)
class TransitionResult:
    applied: bool
    from_status: SubscriptionStatus
    to_status: SubscriptionStatus
    subscription: Optional[HealthcareSubscription] = None


@dataclass(frozen=True)
class StepResult:
    outcome: StepOutcome
    subscription: HealthcareSubscription
    reason: Optional[str] = None
