"""Unit tests for wallet arithmetic"""

import uuid
import pytest
from benefits_gateway.domain.models import PaymentStatus, Wallet
from benefits_gateway.domain.money import Money
from benefits_gateway.domain.wallet import credit, debit, payment_status


def _wallet(cents: int) -> Wallet:
    return Wallet(employee_id=uuid.uuid4(), balance=Money(cents))


def test_debit_can_overdraw():
    """1000 debited by 1500 -> -500 and flagged insufficient"""
    outcome = debit(_wallet(1000), Money(1500))
    assert outcome.new_balance == Money(-500)
    assert outcome.sufficient is False


def test_exact_balance_is_sufficient():
    outcome = debit(_wallet(1500), Money(1500))
    assert outcome.new_balance == Money(0)
    assert outcome.sufficient is True


def test_debit_from_negative_balance():
    outcome = debit(_wallet(-500), Money(100))
    assert outcome.new_balance == Money(-600)
    assert outcome.sufficient is False


def test_negative_debit_rejected():
    with pytest.raises(ValueError):
        debit(_wallet(1000), Money(-1))


def test_credit():
    assert credit(_wallet(-500), Money(2000)) == Money(1500)
    with pytest.raises(ValueError):
        credit(_wallet(0), Money(0))


def test_payment_status():
    assert payment_status(None) == PaymentStatus.SUFFICIENT
    assert payment_status(True) == PaymentStatus.SUFFICIENT
    assert payment_status(False) == PaymentStatus.OVERDUE
