"""
Pytest configuration and fixtures for split_ledger tests.
"""
import os

# In-memory database for the whole test session; must be set before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from decimal import Decimal
from typing import Dict, List

from split_ledger.schemas.balance_schema import (
    ExpenseInput, GroupBalanceSummary, OptimizedPayment, SplitInput, UserInput
)


@pytest.fixture
def users() -> List[UserInput]:
    """Alice, Bob and Charlie."""
    return [
        UserInput(id="user1", full_name="Alice", email="alice@example.com"),
        UserInput(id="user2", full_name="Bob", email="bob@example.com"),
        UserInput(id="user3", full_name="Charlie", email="charlie@example.com"),
    ]


@pytest.fixture
def trip_users() -> List[UserInput]:
    return [
        UserInput(id="alice", full_name="Alice Smith", email="alice@example.com"),
        UserInput(id="bob", full_name="Bob Johnson", email="bob@example.com"),
        UserInput(id="charlie", full_name="Charlie Brown", email="charlie@example.com"),
    ]


def make_expense(expense_id: str, total, paid_by: str, splits: Dict[str, object], currency: str = "USD") -> ExpenseInput:
    """Build an ExpenseInput from a {user_id: amount} mapping, keeping its order."""
    return ExpenseInput(
        id=expense_id,
        total_amount=Decimal(str(total)),
        currency=currency,
        paid_by=paid_by,
        splits=[SplitInput(user_id=user_id, amount=Decimal(str(amount))) for user_id, amount in splits.items()]
    )


@pytest.fixture
def expense_factory():
    return make_expense


@pytest.fixture
def trip_expenses() -> List[ExpenseInput]:
    """Hotel paid by Alice, dinner by Bob and gas by Charlie, all split three ways."""
    return [
        make_expense("hotel", 300, "alice", {"alice": 100, "bob": 100, "charlie": 100}),
        make_expense("dinner", 150, "bob", {"alice": 50, "bob": 50, "charlie": 50}),
        make_expense("gas", 90, "charlie", {"alice": 30, "bob": 30, "charlie": 30}),
    ]


def balance_of(summary: GroupBalanceSummary, user_id: str):
    return next(b for b in summary.user_balances if b.user_id == user_id)


def verify_payments_settle_balances(balances: Dict[str, Decimal], payments: List[OptimizedPayment]) -> None:
    """
    Helper to verify a payment plan settles all debts.

    Paying moves the payer's balance up and the payee's balance down; every
    final balance must be within one cent of zero.
    """
    final = dict(balances)
    for payment in payments:
        final[payment.from_user_id] = final.get(payment.from_user_id, Decimal("0")) + payment.amount
        final[payment.to_user_id] = final.get(payment.to_user_id, Decimal("0")) - payment.amount

    for user, balance in final.items():
        assert abs(balance) <= Decimal("0.01"), \
            f"User {user} not settled: initial={balances.get(user)}, final={balance}"
