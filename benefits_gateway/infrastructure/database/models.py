"""SQLAlchemy ORM models for companies, plans, subscriptions and wallets"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# Employer percentages, e.g. 33.3333
PERCENTAGE = Numeric(precision=9, scale=4, asdecimal=True)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompanyRecord(Base):
    """Employer sponsoring the benefits"""

    __tablename__ = "company"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    employees = relationship("EmployeeRecord", back_populates="company")


class DemographicRecord(Base):
    """Identity record of an employee or covered dependent"""

    __tablename__ = "demographic"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    government_id = Column(Text, nullable=False)
    birth_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class EmployeeRecord(Base):
    __tablename__ = "employee"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey("company.id", ondelete="CASCADE"), nullable=False, index=True)
    demographic_id = Column(UUID(as_uuid=True), ForeignKey("demographic.id"), nullable=False)
    email = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    company = relationship("CompanyRecord", back_populates="employees")
    demographic = relationship("DemographicRecord")
    wallet = relationship("WalletRecord", back_populates="employee", uselist=False)
    subscriptions = relationship("SubscriptionRecord", back_populates="employee")


class PlanRecord(Base):
    """Healthcare plan pricing per covered role"""

    __tablename__ = "healthcare_plan"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    currency_code = Column(String(3), nullable=False, default="USD")
    cost_employee_cents = Column(BigInteger, nullable=False)
    cost_spouse_cents = Column(BigInteger, nullable=False)
    cost_child_cents = Column(BigInteger, nullable=False)
    pct_employee_paid_by_company = Column(PERCENTAGE, nullable=False)
    pct_spouse_paid_by_company = Column(PERCENTAGE, nullable=False)
    pct_child_paid_by_company = Column(PERCENTAGE, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class SubscriptionRecord(Base):
    """Employee's enrollment in a plan"""

    __tablename__ = "healthcare_subscription"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employee.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(UUID(as_uuid=True), ForeignKey("company.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("healthcare_plan.id"), nullable=False)
    type = Column(Text, nullable=False)
    status = Column(Text, nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    billing_anchor = Column(Integer, nullable=False)
    last_billed_on = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    employee = relationship("EmployeeRecord", back_populates="subscriptions")
    plan = relationship("PlanRecord")
    items = relationship("SubscriptionItemRecord", back_populates="subscription", cascade="all, delete-orphan")
    steps = relationship("SubscriptionStepRecord", back_populates="subscription", cascade="all, delete-orphan")
    documents = relationship("SubscriptionDocumentRecord", back_populates="subscription", cascade="all, delete-orphan")


class SubscriptionItemRecord(Base):
    """Covered member within a subscription"""

    __tablename__ = "healthcare_subscription_item"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subscription_id = Column(
        UUID(as_uuid=True), ForeignKey("healthcare_subscription.id", ondelete="CASCADE"), nullable=False
    )
    role = Column(Text, nullable=False)
    demographic_id = Column(UUID(as_uuid=True), ForeignKey("demographic.id"), nullable=True)
    company_pct = Column(PERCENTAGE, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    subscription = relationship("SubscriptionRecord", back_populates="items")


class SubscriptionStepRecord(Base):
    """Onboarding step progress"""

    __tablename__ = "subscription_step"
    __table_args__ = (UniqueConstraint("subscription_id", "type", name="uq_subscription_step_type"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subscription_id = Column(
        UUID(as_uuid=True), ForeignKey("healthcare_subscription.id", ondelete="CASCADE"), nullable=False
    )
    type = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    subscription = relationship("SubscriptionRecord", back_populates="steps")


class SubscriptionDocumentRecord(Base):
    """Uploaded enrollment document as acknowledged by the document intake service"""

    __tablename__ = "subscription_document"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subscription_id = Column(
        UUID(as_uuid=True), ForeignKey("healthcare_subscription.id", ondelete="CASCADE"), nullable=False
    )
    original_name = Column(Text, nullable=False)
    mime_type = Column(Text, nullable=False)
    file_size_bytes = Column(Integer, nullable=False)
    storage_key = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    subscription = relationship("SubscriptionRecord", back_populates="documents")


class WalletRecord(Base):
    """Prepaid employee balance"""

    __tablename__ = "wallet"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employee.id", ondelete="CASCADE"), nullable=False, unique=True)
    balance_cents = Column(BigInteger, nullable=False, default=0)
    currency_code = Column(String(3), nullable=False, default="USD")
    # Sufficiency of the latest subscription debit, NULL before the first one
    last_debit_sufficient = Column(Boolean, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    employee = relationship("EmployeeRecord", back_populates="wallet")
    transactions = relationship("WalletTransactionRecord", back_populates="wallet", cascade="all, delete-orphan")


class WalletTransactionRecord(Base):
    """Append-only wallet ledger entry"""

    __tablename__ = "wallet_transaction"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wallet_id = Column(UUID(as_uuid=True), ForeignKey("wallet.id", ondelete="CASCADE"), nullable=False, index=True)
    subscription_id = Column(UUID(as_uuid=True), ForeignKey("healthcare_subscription.id"), nullable=True)
    kind = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    balance_after_cents = Column(BigInteger, nullable=False)
    sufficient = Column(Boolean, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    wallet = relationship("WalletRecord", back_populates="transactions")
