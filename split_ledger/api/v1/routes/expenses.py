from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from split_ledger.api.v1.dependencies import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.expense_service import (
    create_expense, get_group_expenses, get_member_expense, update_expense, delete_expense
)
from split_ledger.services.group_service import get_member_group
from split_ledger.schemas.balance_schema import SplitInput
from split_ledger.schemas.expense_schema import ExpenseCreate, ExpenseOut, ExpenseUpdate, SplitPreviewRequest
from split_ledger.utils.split_calculator import calculate_split_amounts

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("/split-preview", response_model=List[SplitInput])
def preview_split(
    preview: SplitPreviewRequest,
    user_id: str = Depends(get_current_user_id)
):
    """Calculate split amounts without storing anything"""
    return calculate_split_amounts(preview.total_amount, preview.split_type, preview.participants)


@router.post("/groups/{group_id}", response_model=ExpenseOut)
def create_new_expense(
    group_id: str,
    expense_data: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new expense paid by the current user"""
    get_member_group(db, group_id, user_id)
    return create_expense(db, group_id, expense_data, user_id)


@router.get("/groups/{group_id}", response_model=List[ExpenseOut])
def get_group_expenses_list(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all expenses for a group"""
    get_member_group(db, group_id, user_id)
    return get_group_expenses(db, group_id)


@router.get("/{expense_id}", response_model=ExpenseOut)
def get_expense_details(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get one expense of a group the current user belongs to"""
    return get_member_expense(db, expense_id, user_id)


@router.put("/{expense_id}", response_model=ExpenseOut)
def update_existing_expense(
    expense_id: str,
    expense_data: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Edit an expense created by the current user"""
    return update_expense(db, expense_id, expense_data, user_id)


@router.delete("/{expense_id}")
def delete_existing_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete an expense"""
    delete_expense(db, expense_id, user_id)
    return {"message": "Expense deleted successfully"}
