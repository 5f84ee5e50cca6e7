"""Wallet ledger - debits and credits against per-employee prepaid balances"""

import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from benefits_gateway.config import settings
from benefits_gateway.domain import wallet as wallet_math
from benefits_gateway.domain.exceptions import ConcurrentUpdateError, InsufficientReference, SubscriptionNotActive
from benefits_gateway.domain.models import (
    DebitResult,
    HealthcareSubscription,
    PaymentStatus,
    SubscriptionStatus,
    TransactionKind,
)
from benefits_gateway.domain.money import Money
from benefits_gateway.infrastructure.database.models import WalletRecord, WalletTransactionRecord
from benefits_gateway.infrastructure.database.repositories import (
    CompanyRepository,
    WalletRepository,
    wallet_to_domain,
)
from benefits_gateway.infrastructure.observability.logging import log_debit, logger
from benefits_gateway.infrastructure.observability.metrics import record_debit, wallet_cas_conflicts_counter


@dataclass(frozen=True)
class EmployeePaymentStanding:
    employee_id: uuid.UUID
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    balance_cents: Optional[int]
    currency: Optional[str]
    payment_status: PaymentStatus


class WalletService:
    """
    Applies balance changes with a compare-and-swap loop on the stored
    balance so concurrent debits of one wallet never lose an update.
    """

    def __init__(self, db: Session, max_attempts: Optional[int] = None):
        self.db = db
        self.wallets = WalletRepository(db)
        self.companies = CompanyRepository(db)
        self.max_attempts = max_attempts or settings.wallet_cas_max_attempts

    def get_wallet(self, employee_id: uuid.UUID) -> WalletRecord:
        record = self.wallets.get_by_employee(employee_id)
        if record is None:
            raise InsufficientReference(f"Wallet for employee {employee_id} not found")
        return record

    def recent_transactions(self, employee_id: uuid.UUID, limit: int = 20) -> List[WalletTransactionRecord]:
        return self.wallets.recent_transactions(self.get_wallet(employee_id).id, limit=limit)

    def debit_for_subscription(self, subscription: HealthcareSubscription, amount: Money) -> DebitResult:
        """
        Debit a subscription's cost. Does not commit.

        The debit always applies; sufficient reports whether the balance
        before the debit covered the amount.

        Raises:
            SubscriptionNotActive: subscription is pending or terminated
            ConcurrentUpdateError: balance kept changing under us
        """
        if subscription.status != SubscriptionStatus.ACTIVE:
            raise SubscriptionNotActive(
                f"Subscription {subscription.id} is {subscription.status.value}, refusing debit"
            )

        for _ in range(self.max_attempts):
            record = self.get_wallet(subscription.employee_id)
            outcome = wallet_math.debit(wallet_to_domain(record), amount)
            if self.wallets.compare_and_set_balance(
                record.id,
                expected_cents=record.balance_cents,
                new_cents=outcome.new_balance.cents,
                last_debit_sufficient=outcome.sufficient,
            ):
                break
            wallet_cas_conflicts_counter.inc()
        else:
            raise ConcurrentUpdateError(f"Wallet of employee {subscription.employee_id} changed {self.max_attempts} times")

        self.wallets.add_transaction(
            record.id,
            TransactionKind.SUBSCRIPTION_PAYMENT,
            amount_cents=amount.cents,
            balance_after_cents=outcome.new_balance.cents,
            sufficient=outcome.sufficient,
            subscription_id=subscription.id,
        )

        record_debit(amount.cents, outcome.sufficient)
        log_debit(
            str(subscription.id),
            str(subscription.employee_id),
            amount.cents,
            outcome.new_balance.cents,
            outcome.sufficient,
        )

        return DebitResult(
            subscription_id=subscription.id,
            employee_id=subscription.employee_id,
            amount_cents=amount.cents,
            new_balance_cents=outcome.new_balance.cents,
            sufficient=outcome.sufficient,
        )

    def credit(self, employee_id: uuid.UUID, amount_cents: int) -> Money:
        """Top up a wallet and commit; returns the new balance"""
        for _ in range(self.max_attempts):
            record = self.get_wallet(employee_id)
            wallet = wallet_to_domain(record)
            new_balance = wallet_math.credit(wallet, Money(amount_cents, wallet.balance.currency))
            if self.wallets.compare_and_set_balance(record.id, record.balance_cents, new_balance.cents):
                break
            wallet_cas_conflicts_counter.inc()
        else:
            raise ConcurrentUpdateError(f"Wallet of employee {employee_id} changed {self.max_attempts} times")

        self.wallets.add_transaction(
            record.id,
            TransactionKind.TOP_UP,
            amount_cents=amount_cents,
            balance_after_cents=new_balance.cents,
        )
        self.db.commit()

        logger.info(
            "Wallet credited",
            extra={
                "employee_id": str(employee_id),
                "step": "wallet_credit",
                "amount_cents": amount_cents,
                "new_balance_cents": new_balance.cents,
            },
        )
        return new_balance

    def list_employees_by_payment_status(
        self,
        company_id: uuid.UUID,
        status: Optional[PaymentStatus] = None,
    ) -> List[EmployeePaymentStanding]:
        """Employees of a company with payment status from their latest debit's sufficiency"""
        if self.companies.get(company_id) is None:
            raise InsufficientReference(f"Company {company_id} not found")

        standings = []
        for employee in self.companies.list_employees(company_id):
            wallet = employee.wallet
            standing = EmployeePaymentStanding(
                employee_id=employee.id,
                email=employee.email,
                first_name=employee.demographic.first_name if employee.demographic else None,
                last_name=employee.demographic.last_name if employee.demographic else None,
                balance_cents=wallet.balance_cents if wallet else None,
                currency=wallet.currency_code if wallet else None,
                payment_status=wallet_math.payment_status(wallet.last_debit_sufficient if wallet else None),
            )
            if status is None or standing.payment_status == status:
                standings.append(standing)
        return standings
