from sqlalchemy.orm import Session
from fastapi import HTTPException
from typing import List, Optional
from decimal import Decimal
from split_ledger.models.expenses import Expense, ExpenseSplit
from split_ledger.schemas.balance_schema import SplitInput
from split_ledger.schemas.expense_schema import ExpenseCreate, ExpenseUpdate, SplitParticipant, SplitType
from split_ledger.services.balance_service import recalculate_group_balances
from split_ledger.utils.exceptions import InvalidInputError
from split_ledger.utils.money import TOLERANCE, sum_decimals
from split_ledger.utils.split_calculator import calculate_split_amounts


def resolve_expense_splits(expense_data: ExpenseCreate) -> List[SplitInput]:
    """Use the explicit splits, or derive them from the split type and participants"""
    if expense_data.splits is not None:
        return list(expense_data.splits)

    try:
        return calculate_split_amounts(
            expense_data.total_amount, expense_data.split_type, expense_data.participants
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


def validate_expense_splits(db: Session, group_id: str, splits: List[SplitInput], total_amount: Decimal):
    """Splits must be non-empty, add up to the total and only name group members"""
    from .group_service import get_group_members

    if not splits:
        raise HTTPException(status_code=400, detail="An expense needs at least one split")

    # Validate splits add up to the expense amount
    total_splits = sum_decimals(split.amount for split in splits)
    if abs(total_splits - total_amount) > TOLERANCE:
        raise HTTPException(
            status_code=400,
            detail=f"Total splits {total_splits} must equal expense amount {total_amount}"
        )

    # Validate all split users are group members
    group_members = {member.user_id for member in get_group_members(db, group_id)}
    for split in splits:
        if split.user_id not in group_members:
            raise HTTPException(status_code=400, detail=f"User {split.user_id} is not a member of this group")


def _split_rows(splits: List[SplitInput]) -> List[ExpenseSplit]:
    return [
        ExpenseSplit(user_id=split.user_id, amount=split.amount, position=position)
        for position, split in enumerate(splits)
    ]


def create_expense(db: Session, group_id: str, expense_data: ExpenseCreate, paid_by: str) -> Expense:
    """Create a new expense with its splits and refresh the group's cached balances"""
    from .group_service import is_group_member

    # Validate that payer is a group member
    if not is_group_member(db, group_id, paid_by):
        raise HTTPException(status_code=403, detail="Only group members can create expenses")

    splits = resolve_expense_splits(expense_data)
    validate_expense_splits(db, group_id, splits, expense_data.total_amount)

    expense = Expense(
        group_id=group_id,
        title=expense_data.title,
        total_amount=expense_data.total_amount,
        currency=expense_data.currency.upper(),
        paid_by=paid_by,
        split_type=expense_data.split_type.value,
        splits=_split_rows(splits)
    )
    db.add(expense)
    db.commit()

    recalculate_group_balances(db, group_id)
    db.refresh(expense)
    return expense


def get_expense(db: Session, expense_id: str) -> Optional[Expense]:
    """Get an expense by ID"""
    return db.query(Expense).filter(Expense.id == expense_id).first()


def get_member_expense(db: Session, expense_id: str, user_id: str) -> Expense:
    """Get an expense the user can see: 404 if unknown, 403 if not in its group"""
    from .group_service import is_group_member

    expense = get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")

    if not is_group_member(db, expense.group_id, user_id):
        raise HTTPException(status_code=403, detail="Access denied")

    return expense


def get_group_expenses(db: Session, group_id: str) -> List[Expense]:
    """Get all expenses for a group, oldest first"""
    return db.query(Expense)\
        .filter(Expense.group_id == group_id)\
        .order_by(Expense.created_at, Expense.id)\
        .all()


def _rescaled_splits(expense: Expense, total_amount: Decimal) -> List[SplitInput]:
    """Splits of an expense whose total changed but whose splits were not resent"""
    if SplitType(expense.split_type) != SplitType.EQUAL:
        raise HTTPException(
            status_code=400,
            detail=f"Changing the total of a {expense.split_type} expense requires new splits"
        )

    participants = [SplitParticipant(user_id=split.user_id) for split in expense.splits]
    try:
        return calculate_split_amounts(total_amount, SplitType.EQUAL, participants)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


def update_expense(db: Session, expense_id: str, update_data: ExpenseUpdate, user_id: str) -> Expense:
    """
    Edit an expense (creator only).

    A new total without new splits re-splits an EQUAL expense over the same
    users. The group's cached balances are refreshed whenever the amounts or
    the currency change.
    """
    expense = get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")

    if expense.paid_by != user_id:
        raise HTTPException(status_code=403, detail="Only the expense creator can edit this expense")

    current_total = Decimal(expense.total_amount)
    total_amount = update_data.total_amount if update_data.total_amount is not None else current_total
    total_changed = total_amount != current_total

    if update_data.splits is not None:
        splits = list(update_data.splits)
    elif total_changed:
        splits = _rescaled_splits(expense, total_amount)
    else:
        splits = None

    if splits is not None:
        validate_expense_splits(db, expense.group_id, splits, total_amount)
        expense.splits = _split_rows(splits)

    if update_data.title is not None:
        expense.title = update_data.title
    if update_data.currency is not None:
        expense.currency = update_data.currency.upper()
    expense.total_amount = total_amount
    db.commit()

    if splits is not None or update_data.currency is not None:
        recalculate_group_balances(db, expense.group_id)
    db.refresh(expense)
    return expense


def delete_expense(db: Session, expense_id: str, user_id: str):
    """Delete an expense (payer only) and refresh the group's cached balances"""
    expense = get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")

    if expense.paid_by != user_id:
        raise HTTPException(status_code=403, detail="Only the payer can delete an expense")

    group_id = expense.group_id
    db.delete(expense)
    db.commit()

    recalculate_group_balances(db, group_id)
