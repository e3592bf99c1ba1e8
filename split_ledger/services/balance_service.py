import logging
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_
from fastapi import HTTPException
from typing import List, Optional, Tuple
from decimal import Decimal
from split_ledger.config import get_settings
from split_ledger.models.balances import Balance
from split_ledger.models.groups import Group
from split_ledger.schemas.balance_schema import (
    BalanceRowOut, BalanceUserOut, ExpenseInput, GroupBalanceSummary,
    SplitInput, UserBalanceOverview, UserInput
)
from split_ledger.utils.balance_calculator import calculate_group_balances
from split_ledger.utils.money import ZERO
from split_ledger.utils.payment_simulator import find_payment, simulate_payment

logger = logging.getLogger(__name__)


def load_group_snapshot(db: Session, group_id: str) -> Tuple[Group, List[ExpenseInput], List[UserInput]]:
    """Read a group's expenses and members as balance calculator input"""
    from .group_service import get_group, get_group_users
    from .expense_service import get_group_expenses

    group = get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    expenses = [
        ExpenseInput(
            id=expense.id,
            total_amount=Decimal(expense.total_amount),
            currency=expense.currency,
            paid_by=expense.paid_by,
            splits=[
                SplitInput(user_id=split.user_id, amount=Decimal(split.amount))
                for split in expense.splits
            ]
        )
        for expense in get_group_expenses(db, group_id)
    ]

    users = [
        UserInput(id=user.id, full_name=user.full_name, email=user.email)
        for user in get_group_users(db, group_id)
    ]

    return group, expenses, users


def upsert_balance(
    db: Session,
    group_id: str,
    from_user_id: str,
    to_user_id: str,
    amount: Decimal,
    currency: str = "USD"
) -> Balance:
    """Insert or update the cached balance row of a (group, from, to) triple"""
    balance = db.query(Balance).filter(
        and_(
            Balance.group_id == group_id,
            Balance.from_user_id == from_user_id,
            Balance.to_user_id == to_user_id
        )
    ).first()

    if balance:
        balance.amount = amount
        balance.currency = currency
    else:
        balance = Balance(
            group_id=group_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            currency=currency
        )
        db.add(balance)

    return balance


def recalculate_group_balances(db: Session, group_id: str) -> GroupBalanceSummary:
    """
    Recompute a group's balances from its expenses and refresh the cache.

    The cached rows of the group are replaced by one row per debt
    relationship of the fresh summary.
    """
    group, expenses, users = load_group_snapshot(db, group_id)

    currency = expenses[0].currency if expenses else get_settings().default_currency
    summary = calculate_group_balances(
        expenses, users, group_id=group.id, group_name=group.name, currency=currency
    )

    db.query(Balance).filter(Balance.group_id == group_id).delete(synchronize_session=False)
    for debt in summary.debt_relationships:
        upsert_balance(db, group_id, debt.from_user_id, debt.to_user_id, debt.amount, debt.currency)
    db.commit()

    logger.info(
        f"Recalculated balances for group {group_id}: "
        f"{len(summary.debt_relationships)} debts, {len(summary.optimized_payments)} payments, "
        f"settled={summary.is_settled}"
    )
    return summary


def get_group_balance_summary(db: Session, group_id: str) -> GroupBalanceSummary:
    """Get the balance summary of a group; always recomputed, never read from the cache"""
    return recalculate_group_balances(db, group_id)


def get_group_balances(db: Session, group_id: str) -> List[Balance]:
    """Get the cached balance rows of a group"""
    return db.query(Balance).filter(Balance.group_id == group_id).all()


def get_user_balances(db: Session, user_id: str, group_id: Optional[str] = None) -> List[Balance]:
    """Get the cached balance rows a user is part of, optionally within one group"""
    involved = or_(Balance.from_user_id == user_id, Balance.to_user_id == user_id)
    query = db.query(Balance).filter(involved)
    if group_id:
        query = query.filter(Balance.group_id == group_id)
    return query.all()


def simulate_group_payment(db: Session, group_id: str, payment_id: Optional[str]) -> GroupBalanceSummary:
    """Simulate one optimized payment of a group, identified as "<from>-<to>" """
    if not payment_id:
        raise HTTPException(status_code=400, detail="Payment ID is required")

    summary = get_group_balance_summary(db, group_id)

    payment = find_payment(summary, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")

    return simulate_payment(summary, payment)


def to_balance_row(balance: Balance) -> BalanceRowOut:
    return BalanceRowOut(
        id=balance.id,
        group_id=balance.group_id,
        group_name=balance.group.name if balance.group else None,
        from_user=BalanceUserOut(
            id=balance.from_user.id,
            name=balance.from_user.display_name,
            email=balance.from_user.email
        ),
        to_user=BalanceUserOut(
            id=balance.to_user.id,
            name=balance.to_user.display_name,
            email=balance.to_user.email
        ),
        amount=Decimal(balance.amount),
        currency=balance.currency,
        updated_at=balance.updated_at
    )


def summarize_user_balances(balances: List[Balance], user_id: str) -> UserBalanceOverview:
    """Totals of what a user owes and is owed across cached balance rows"""
    rows = [to_balance_row(balance) for balance in balances]

    total_owing = sum((row.amount for row in rows if row.from_user.id == user_id), ZERO)
    total_owed = sum((row.amount for row in rows if row.to_user.id == user_id), ZERO)

    return UserBalanceOverview(
        total_owed=total_owed,
        total_owing=total_owing,
        net_balance=total_owed - total_owing,
        balances=rows
    )
