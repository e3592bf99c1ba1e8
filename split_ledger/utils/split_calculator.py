"""
Split Calculator

Derives the per-member split rows of an expense from its total and a split
policy:

- EQUAL: the total divided evenly across all participants
- PERCENTAGE: total * percentage / 100 for each participant with a percentage
- CUSTOM: the explicit amount of each participant that has one

All arithmetic is done in Decimal. When the raw splits miss the total by more
than one cent, the whole difference goes to the first split; every amount is
then rounded to cents.

Example Usage:
    from split_ledger.utils.split_calculator import calculate_split_amounts

    splits = calculate_split_amounts(Decimal("10"), "EQUAL", [
        SplitParticipant(user_id="A"),
        SplitParticipant(user_id="B"),
        SplitParticipant(user_id="C"),
    ])

    # Result: A=3.34, B=3.33, C=3.33
"""

import logging
from decimal import Decimal
from typing import List, Sequence, Tuple, Union

from split_ledger.schemas.balance_schema import SplitInput
from split_ledger.schemas.expense_schema import SplitParticipant, SplitType
from split_ledger.utils.exceptions import InvalidInputError
from split_ledger.utils.money import TOLERANCE, round_decimal, sum_decimals, to_decimal

logger = logging.getLogger(__name__)


def parse_split_type(split_type: Union[SplitType, str]) -> SplitType:
    """
    Coerce a split type name to SplitType.

    Raises:
        InvalidInputError: If the name is not one of EQUAL, PERCENTAGE, CUSTOM
    """
    if isinstance(split_type, SplitType):
        return split_type
    try:
        return SplitType(split_type)
    except ValueError as e:
        raise InvalidInputError(f"Unknown split type: {split_type!r}") from e


def _raw_splits(
    total: Decimal,
    split_type: SplitType,
    participants: Sequence[SplitParticipant]
) -> List[Tuple[str, Decimal]]:
    if split_type is SplitType.EQUAL:
        share = total / Decimal(len(participants))
        return [(p.user_id, share) for p in participants]

    if split_type is SplitType.PERCENTAGE:
        return [
            (p.user_id, total * to_decimal(p.percentage) / Decimal('100'))
            for p in participants
            if p.percentage is not None
        ]

    if split_type is SplitType.CUSTOM:
        return [
            (p.user_id, to_decimal(p.custom_amount))
            for p in participants
            if p.custom_amount is not None
        ]

    raise InvalidInputError(f"Unhandled split type: {split_type!r}")


def calculate_split_amounts(
    total_amount: Union[Decimal, int, float, str],
    split_type: Union[SplitType, str],
    participants: Sequence[SplitParticipant]
) -> List[SplitInput]:
    """
    Calculate split rows for an expense.

    Args:
        total_amount: Expense total (non-negative)
        split_type: SplitType or its name (case-insensitive)
        participants: Ordered participants; the first one absorbs rounding

    Returns:
        List of SplitInput rows, amounts rounded to 2 decimals. Participants
        without a percentage (PERCENTAGE) or custom amount (CUSTOM) get no row.

    Raises:
        InvalidInputError: On zero participants, a negative total or an
            unknown split type
    """
    split_type = parse_split_type(split_type)
    total = to_decimal(total_amount)

    if total < 0:
        raise InvalidInputError(f"Expense total must be non-negative, got {total}")
    if not participants:
        raise InvalidInputError("At least one participant is required to split an expense")

    splits = _raw_splits(total, split_type, participants)
    if not splits:
        logger.debug(f"No participant carried a {split_type.value} value; no splits produced")
        return []

    difference = total - sum_decimals(amount for _, amount in splits)
    if abs(difference) > TOLERANCE:
        first_user, first_amount = splits[0]
        splits[0] = (first_user, first_amount + difference)

    rounded = [(user_id, round_decimal(amount)) for user_id, amount in splits]

    if split_type is SplitType.EQUAL:
        # Cents lost to rounding go to the first participant as well
        residual = round_decimal(total) - sum_decimals(amount for _, amount in rounded)
        if residual:
            first_user, first_amount = rounded[0]
            rounded[0] = (first_user, first_amount + residual)

    if rounded[0][1] < 0:
        raise InvalidInputError(
            f"Split amounts exceed the expense total {total}; "
            f"the first participant would owe {rounded[0][1]}"
        )

    return [SplitInput(user_id=user_id, amount=amount) for user_id, amount in rounded]
