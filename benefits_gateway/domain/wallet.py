"""Wallet arithmetic - unconditional debits with a sufficiency flag"""

from typing import Optional

from benefits_gateway.domain.models import DebitOutcome, PaymentStatus, Wallet
from benefits_gateway.domain.money import Money


def debit(wallet: Wallet, amount: Money) -> DebitOutcome:
    """
    Debit always applies, the balance may go negative.

    sufficient reports whether the balance before the debit covered the
    amount: 1000 debited by 1500 -> balance -500, sufficient=False.
    """
    if amount.is_negative():
        raise ValueError("Debit amount cannot be negative")
    sufficient = wallet.balance >= amount
    return DebitOutcome(new_balance=wallet.balance - amount, sufficient=sufficient)


def credit(wallet: Wallet, amount: Money) -> Money:
    if amount.cents <= 0:
        raise ValueError("Credit amount must be positive")
    return wallet.balance + amount


def payment_status(last_debit_sufficient: Optional[bool]) -> PaymentStatus:
    """Overdue only when the most recent subscription debit was not covered"""
    if last_debit_sufficient is False:
        return PaymentStatus.OVERDUE
    return PaymentStatus.SUFFICIENT
