"""
Payment Simulator

Applies one settlement payment to a previously computed GroupBalanceSummary
and returns the updated summary, without re-deriving anything from the raw
expenses. The input summary is never modified.
"""

import logging
from typing import Optional

from split_ledger.schemas.balance_schema import GroupBalanceSummary, OptimizedPayment
from split_ledger.utils.balance_calculator import is_group_settled
from split_ledger.utils.exceptions import InvalidInputError
from split_ledger.utils.money import ZERO

logger = logging.getLogger(__name__)


def find_payment(group_balances: GroupBalanceSummary, payment_id: str) -> Optional[OptimizedPayment]:
    """Look up an optimized payment by its "<from_user_id>-<to_user_id>" id."""
    for payment in group_balances.optimized_payments:
        if payment.payment_id == payment_id:
            return payment
    return None


def simulate_payment(group_balances: GroupBalanceSummary, payment: OptimizedPayment) -> GroupBalanceSummary:
    """
    Simulate a payment and return the updated balances.

    The payer's owing and the payee's owed amounts shrink by the payment
    (floored at zero) and their net balances move towards zero. The listed
    optimized payment between the same two users is treated as fully
    discharged and removed. Debt relationships and total_expenses pass
    through unchanged.

    Raises:
        InvalidInputError: If the amount is not positive or the payment
            goes from a user to themselves
    """
    if payment.amount <= 0:
        raise InvalidInputError(f"Payment amount must be positive, got {payment.amount}")
    if payment.from_user_id == payment.to_user_id:
        raise InvalidInputError(f"Payment from {payment.from_user_id} to themselves")

    updated_balances = []
    for balance in group_balances.user_balances:
        if balance.user_id == payment.from_user_id:
            balance = balance.model_copy(update={
                "total_owing": max(ZERO, balance.total_owing - payment.amount),
                "net_balance": balance.net_balance + payment.amount,
            })
        elif balance.user_id == payment.to_user_id:
            balance = balance.model_copy(update={
                "total_owed": max(ZERO, balance.total_owed - payment.amount),
                "net_balance": balance.net_balance - payment.amount,
            })
        updated_balances.append(balance)

    remaining_payments = [
        p for p in group_balances.optimized_payments
        if not (p.from_user_id == payment.from_user_id and p.to_user_id == payment.to_user_id)
    ]

    if len(remaining_payments) == len(group_balances.optimized_payments):
        logger.info(
            f"Simulated payment {payment.payment_id} is not part of the optimized plan "
            f"of group {group_balances.group_id or '<unnamed>'}"
        )

    return group_balances.model_copy(update={
        "user_balances": updated_balances,
        "optimized_payments": remaining_payments,
        "is_settled": is_group_settled(updated_balances),
    })
