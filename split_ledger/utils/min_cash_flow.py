"""
Min-Cash-Flow Algorithm Module

This module implements the settlement optimizer: given every user's net
balance, it produces a small set of peer-to-peer payments that brings every
balance to zero.

The algorithm works by:
1. Separating users into creditors (net > 0.01) and debtors (net < -0.01)
2. Sorting both lists by remaining amount, largest first (stable on ties)
3. Matching the largest remaining creditor with the largest remaining debtor
4. Transferring the minimum of the two remainders and advancing past any
   party whose remainder drops below the tolerance

This greedy strategy always settles every debt, and for the small groups the
service targets it is close to the minimum number of transactions. Finding
the true minimum is NP-hard in general.

Time Complexity: O(n log n) for sorting + O(n) for matching = O(n log n)
Space Complexity: O(n) for the working lists and the result

Example Usage:
    from split_ledger.utils.min_cash_flow import min_cash_flow

    balances = {"A": Decimal("80"), "B": Decimal("-10"), "C": Decimal("-70")}
    settlements = min_cash_flow(balances)

    # Result: [{"from": "C", "to": "A", "amount": Decimal("70.00")},
    #          {"from": "B", "to": "A", "amount": Decimal("10.00")}]
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from split_ledger.schemas.balance_schema import OptimizedPayment, UserBalance, UserInput
from split_ledger.utils.exceptions import report_referential_gap
from split_ledger.utils.money import TOLERANCE, round_decimal, sum_decimals

# Configure logger
logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 1000


@dataclass
class _Party:
    user_id: str
    name: str
    remaining: Decimal


def validate_balance_sum(balances: Dict[str, Decimal], tolerance: Decimal = TOLERANCE) -> None:
    """
    Validate that the sum of all balances is approximately zero.

    In a correctly balanced group the net balances sum to zero (within
    rounding tolerance): no money is created or destroyed.

    Raises:
        ValueError: If the sum of balances exceeds the tolerance

    Example:
        >>> validate_balance_sum({"A": Decimal("50"), "B": Decimal("-50")})  # Passes
        >>> validate_balance_sum({"A": Decimal("50"), "B": Decimal("-49")})  # Raises ValueError
    """
    total = sum_decimals(balances.values())
    if abs(total) > tolerance:
        raise ValueError(
            f"Balances not zero-sum: total={total}, tolerance={tolerance}. "
            f"This indicates unbalanced expense data."
        )


def _greedy_match(
    creditors: List[_Party],
    debtors: List[_Party],
    tolerance: Decimal,
    max_iterations: int
) -> List[Tuple[_Party, _Party, Decimal]]:
    """
    Run the largest-first matching and return (debtor, creditor, amount) triples.

    Both lists must already hold only parties above the tolerance. They are
    sorted here; Python's sort is stable, so equal remainders keep input order.
    """
    creditors.sort(key=lambda party: party.remaining, reverse=True)
    debtors.sort(key=lambda party: party.remaining, reverse=True)

    transfers = []
    iterations = 0
    i, j = 0, 0

    while i < len(creditors) and j < len(debtors):
        iterations += 1

        # Safety check: prevent infinite loops
        if iterations > max_iterations:
            raise RuntimeError(
                f"Settlement loop exceeded max_iterations ({max_iterations}). "
                f"This may indicate malformed input or rounding issues."
            )

        creditor = creditors[i]
        debtor = debtors[j]

        amount = min(creditor.remaining, debtor.remaining)

        # Only create a transaction if the amount is significant
        if amount > tolerance:
            transfers.append((debtor, creditor, round_decimal(amount)))

        creditor.remaining -= amount
        debtor.remaining -= amount

        if creditor.remaining < tolerance:
            i += 1
        if debtor.remaining < tolerance:
            j += 1

    return transfers


def optimize_payments(
    user_balances: Sequence[UserBalance],
    user_map: Optional[Mapping[str, UserInput]] = None,
    currency: str = "USD",
    tolerance: Decimal = TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS
) -> List[OptimizedPayment]:
    """
    Produce the settlement plan for a set of user balances.

    Args:
        user_balances: Net positions, e.g. from aggregate_user_balances()
        user_map: Optional user_id -> UserInput used to resolve display names
        currency: Currency tag copied onto every payment
        tolerance: Balances within this distance of zero count as settled
        max_iterations: Guard against a runaway matching loop

    Returns:
        List of OptimizedPayment, debtor -> creditor, amounts rounded to cents.
        The amounts sum to the total of the positive balances.

    Example:
        Alice +40, Bob -20, Charlie -20 gives two payments:
        Bob -> Alice 20.00 and Charlie -> Alice 20.00
    """
    def display_name(balance: UserBalance) -> str:
        if user_map is None:
            return balance.user_name
        user = user_map.get(balance.user_id)
        if user is None:
            report_referential_gap(
                f"Balance of {balance.user_id} has no matching user; "
                f"using its recorded name {balance.user_name!r}"
            )
            return balance.user_name
        return user.display_name

    creditors = [
        _Party(b.user_id, display_name(b), b.net_balance)
        for b in user_balances
        if b.net_balance > tolerance
    ]
    debtors = [
        _Party(b.user_id, display_name(b), -b.net_balance)
        for b in user_balances
        if b.net_balance < -tolerance
    ]

    if not creditors or not debtors:
        return []

    transfers = _greedy_match(creditors, debtors, tolerance, max_iterations)

    payments = [
        OptimizedPayment(
            from_user_id=debtor.user_id,
            from_user_name=debtor.name,
            to_user_id=creditor.user_id,
            to_user_name=creditor.name,
            amount=amount,
            currency=currency,
            description=f"Settlement payment from {debtor.name} to {creditor.name}"
        )
        for debtor, creditor, amount in transfers
    ]

    logger.debug(
        f"Optimized {len(creditors)} creditors and {len(debtors)} debtors "
        f"into {len(payments)} payments"
    )
    return payments


def min_cash_flow(
    balances: Dict[str, Decimal],
    tolerance: Decimal = TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS
) -> List[Dict]:
    """
    Minimize the number of transactions needed to settle a balance map.

    Same matching as optimize_payments(), over a plain user_id -> balance map.
    Unlike optimize_payments(), the map must be zero-sum.

    Edge Cases Handled:
    - Empty map or single user: returns []
    - All balances zero (within tolerance): returns []
    - Sum of balances != 0 (beyond tolerance): raises ValueError
    - max_iterations exceeded: raises RuntimeError

    Returns:
        [{"from": str, "to": str, "amount": Decimal}, ...]

    Example:
        >>> min_cash_flow({"A": Decimal("80"), "B": Decimal("-10"), "C": Decimal("-70")})
        [{'from': 'C', 'to': 'A', 'amount': Decimal('70.00')},
         {'from': 'B', 'to': 'A', 'amount': Decimal('10.00')}]
    """
    if len(balances) <= 1:
        return []

    validate_balance_sum(balances, tolerance)

    creditors = [
        _Party(user_id, user_id, balance)
        for user_id, balance in balances.items()
        if balance > tolerance
    ]
    debtors = [
        _Party(user_id, user_id, -balance)
        for user_id, balance in balances.items()
        if balance < -tolerance
    ]

    if not creditors or not debtors:
        return []

    return [
        {"from": debtor.user_id, "to": creditor.user_id, "amount": amount}
        for debtor, creditor, amount in _greedy_match(creditors, debtors, tolerance, max_iterations)
    ]
