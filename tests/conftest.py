"""Pytest fixtures for testing"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from benefits_gateway.api.main import create_app
from benefits_gateway.domain.models import HealthcarePlan, Role, RoleCost, StepType
from benefits_gateway.infrastructure.database.models import (
    Base,
    CompanyRecord,
    DemographicRecord,
    EmployeeRecord,
    WalletRecord,
)
from benefits_gateway.infrastructure.database.session import build_engine, get_db
from benefits_gateway.services.onboarding import OnboardingGate
from benefits_gateway.services.plans import PlanService

# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def company(db: Session) -> CompanyRecord:
    record = CompanyRecord(name="Acme Health Co")
    db.add(record)
    db.commit()
    return record


def _add_employee(db: Session, company_id: uuid.UUID, email: str, balance_cents: int) -> EmployeeRecord:
    demographic = DemographicRecord(
        first_name="Jane",
        last_name="Doe",
        government_id=f"GOV-{uuid.uuid4().hex[:8]}",
        birth_date=date(1990, 5, 17),
    )
    db.add(demographic)
    db.flush()

    employee = EmployeeRecord(company_id=company_id, demographic_id=demographic.id, email=email)
    db.add(employee)
    db.flush()

    db.add(WalletRecord(employee_id=employee.id, balance_cents=balance_cents, currency_code="USD"))
    db.commit()
    return employee


@pytest.fixture
def employee(db: Session, company: CompanyRecord) -> EmployeeRecord:
    """Employee with a $1,000.00 wallet"""
    return _add_employee(db, company.id, "jane@acme.test", 100000)


@pytest.fixture
def make_employee(db: Session, company: CompanyRecord) -> Callable[..., EmployeeRecord]:
    def factory(email: str, balance_cents: int = 0) -> EmployeeRecord:
        return _add_employee(db, company.id, email, balance_cents)

    return factory


@pytest.fixture
def spouse_demographic(db: Session) -> DemographicRecord:
    record = DemographicRecord(
        first_name="John",
        last_name="Doe",
        government_id="GOV-SPOUSE",
        birth_date=date(1988, 2, 3),
    )
    db.add(record)
    db.commit()
    return record


@pytest.fixture
def plan(db: Session) -> HealthcarePlan:
    """employee 12000 @100%, spouse 8000 @50%, child 4000 @50%"""
    return PlanService(db).create_plan(
        "Gold",
        {
            Role.EMPLOYEE: RoleCost(cost_cents=12000, employer_percentage=Decimal("100")),
            Role.SPOUSE: RoleCost(cost_cents=8000, employer_percentage=Decimal("50")),
            Role.CHILD: RoleCost(cost_cents=4000, employer_percentage=Decimal("50")),
        },
    )


@pytest.fixture
def basic_plan(db: Session) -> HealthcarePlan:
    """Employee-paid plan: every role 10000 @0%"""
    return PlanService(db).create_plan(
        "Basic",
        {role: RoleCost(cost_cents=10000, employer_percentage=Decimal("0")) for role in Role},
    )


@pytest.fixture
def activate(db: Session) -> Callable[[uuid.UUID], None]:
    """Drive a subscription waiting on document upload through to active"""

    def run(subscription_id: uuid.UUID) -> None:
        gate = OnboardingGate(db)
        gate.complete_step(subscription_id, StepType.DOCUMENT_UPLOAD)
        gate.activate_plan(subscription_id)

    return run
