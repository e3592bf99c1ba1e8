"""
Balance Calculator

Folds a group's expenses and splits into per-user net positions, the gross
debt relationships behind them, and the optimized settlement plan.

Net balance = total_paid - total_share
- Positive balance: the group owes the user money (creditor)
- Negative balance: the user owes the group money (debtor)

Every split amount is drawn from exactly one expense, whose total is credited
to exactly one payer, so the net balances of a group sum to zero.

Example Usage:
    from split_ledger.utils.balance_calculator import calculate_group_balances

    summary = calculate_group_balances(expenses, users, group_id="g1", group_name="Trip")
    summary.user_balances     # one UserBalance per user, in input order
    summary.optimized_payments
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from split_ledger.schemas.balance_schema import (
    DebtRelationship, ExpenseInput, GroupBalanceSummary, UserBalance,
    UserInput, UserPaymentPlan
)
from split_ledger.utils.exceptions import report_referential_gap
from split_ledger.utils.min_cash_flow import optimize_payments
from split_ledger.utils.money import ZERO, is_zero, round_decimal, sum_decimals

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


def _resolve_currency(expenses: Sequence[ExpenseInput], currency: Optional[str]) -> str:
    if currency:
        resolved = currency
    elif expenses:
        resolved = expenses[0].currency
    else:
        resolved = DEFAULT_CURRENCY

    mixed = sorted({e.currency for e in expenses if e.currency != resolved})
    if mixed:
        logger.warning(
            f"Expenses in {mixed} are aggregated as {resolved}; amounts are not converted"
        )
    return resolved


def aggregate_user_balances(
    expenses: Sequence[ExpenseInput],
    users: Sequence[UserInput]
) -> List[UserBalance]:
    """
    Compute each user's paid/owed position.

    Args:
        expenses: Expenses with their split rows
        users: Group members; output follows this order

    Returns:
        One UserBalance per user. A payer or split user missing from
        ``users`` contributes nothing and is reported as a referential gap.
    """
    accumulators: Dict[str, Dict[str, Decimal]] = {
        user.id: {"paid": ZERO, "owed": ZERO} for user in users
    }

    for expense in expenses:
        payer = accumulators.get(expense.paid_by)
        if payer is None:
            report_referential_gap(
                f"Expense {expense.id}: payer {expense.paid_by} is not a group member; "
                f"{expense.total_amount} paid is ignored"
            )
        else:
            payer["paid"] += expense.total_amount

        for split in expense.splits:
            account = accumulators.get(split.user_id)
            if account is None:
                report_referential_gap(
                    f"Expense {expense.id}: split user {split.user_id} is not a group member; "
                    f"{split.amount} owed is ignored"
                )
                continue
            account["owed"] += split.amount

    balances = []
    for user in users:
        account = accumulators[user.id]
        net = account["paid"] - account["owed"]
        balances.append(UserBalance(
            user_id=user.id,
            user_name=user.display_name,
            email=user.email,
            total_owed=round_decimal(max(ZERO, net)),
            total_owing=round_decimal(max(ZERO, -net)),
            net_balance=round_decimal(net)
        ))

    return balances


def build_debt_relationships(
    expenses: Sequence[ExpenseInput],
    users: Sequence[UserInput],
    currency: str = DEFAULT_CURRENCY
) -> List[DebtRelationship]:
    """
    Derive gross pairwise debts: who owes whom across all expenses.

    Each split whose user is not the payer adds its amount to the
    (split user -> payer) entry. Several expenses between the same pair
    collapse into one relationship. Opposite directions are kept apart;
    netting is the optimizer's job.
    """
    user_map = {user.id: user for user in users}
    matrix: Dict[Tuple[str, str], Decimal] = {}

    for expense in expenses:
        for split in expense.splits:
            if split.user_id == expense.paid_by:
                continue
            key = (split.user_id, expense.paid_by)
            matrix[key] = matrix.get(key, ZERO) + split.amount

    relationships = []
    for (from_user_id, to_user_id), amount in matrix.items():
        if amount <= 0:
            continue

        from_user = user_map.get(from_user_id)
        to_user = user_map.get(to_user_id)
        if from_user is None or to_user is None:
            report_referential_gap(
                f"Debt {from_user_id} -> {to_user_id} of {amount} refers to a user "
                f"outside the group and is dropped"
            )
            continue

        relationships.append(DebtRelationship(
            from_user_id=from_user_id,
            from_user_name=from_user.display_name,
            to_user_id=to_user_id,
            to_user_name=to_user.display_name,
            amount=round_decimal(amount),
            currency=currency
        ))

    return relationships


def is_group_settled(user_balances: Sequence[UserBalance]) -> bool:
    return all(is_zero(balance.net_balance) for balance in user_balances)


def calculate_group_balances(
    expenses: Sequence[ExpenseInput],
    users: Sequence[UserInput],
    group_id: str = "",
    group_name: str = "",
    currency: Optional[str] = None
) -> GroupBalanceSummary:
    """
    Calculate the full balance summary for a group.

    Args:
        expenses: Expenses with their split rows
        users: Group members
        group_id: Copied onto the summary
        group_name: Copied onto the summary
        currency: Settlement currency; defaults to the first expense's currency

    Returns:
        GroupBalanceSummary with user balances, gross debt relationships,
        the greedy settlement plan and the settled flag
    """
    settlement_currency = _resolve_currency(expenses, currency)

    user_balances = aggregate_user_balances(expenses, users)
    debt_relationships = build_debt_relationships(expenses, users, settlement_currency)
    optimized_payments = optimize_payments(
        user_balances,
        {user.id: user for user in users},
        currency=settlement_currency
    )

    summary = GroupBalanceSummary(
        group_id=group_id,
        group_name=group_name,
        currency=settlement_currency,
        total_expenses=sum_decimals(e.total_amount for e in expenses),
        user_balances=user_balances,
        debt_relationships=debt_relationships,
        optimized_payments=optimized_payments,
        is_settled=is_group_settled(user_balances)
    )

    logger.debug(
        f"Group {group_id or '<unnamed>'}: {len(expenses)} expenses, "
        f"{len(debt_relationships)} debts reduced to {len(optimized_payments)} payments"
    )
    return summary


def get_user_payment_plan(user_id: str, group_balances: GroupBalanceSummary) -> UserPaymentPlan:
    """Payments a user has to make and receive under the optimized plan."""
    to_make = [p for p in group_balances.optimized_payments if p.from_user_id == user_id]
    to_receive = [p for p in group_balances.optimized_payments if p.to_user_id == user_id]

    net_amount = (
        sum_decimals(p.amount for p in to_receive)
        - sum_decimals(p.amount for p in to_make)
    )

    return UserPaymentPlan(
        user_id=user_id,
        payments_to_make=to_make,
        payments_to_receive=to_receive,
        net_amount=net_amount
    )
