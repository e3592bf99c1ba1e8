from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from split_ledger.api.v1.dependencies import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.balance_service import (
    get_group_balance_summary, get_group_balances, get_user_balances,
    recalculate_group_balances, simulate_group_payment, summarize_user_balances,
    to_balance_row
)
from split_ledger.services.group_service import get_member_group
from split_ledger.schemas.balance_schema import (
    ApiResponse, BalanceRowOut, GroupBalanceSummary, SimulatePaymentRequest,
    UserBalanceOverview, UserPaymentPlan
)
from split_ledger.utils.balance_calculator import get_user_payment_plan

router = APIRouter(tags=["balances"])


@router.get("/balances", response_model=ApiResponse[UserBalanceOverview])
def get_my_balances(
    group_id: Optional[str] = Query(None, alias="groupId"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get cached balances of one group, or of every group the current user is in"""
    if group_id:
        get_member_group(db, group_id, user_id)
        balances = get_group_balances(db, group_id)
    else:
        balances = get_user_balances(db, user_id)

    return ApiResponse(data=summarize_user_balances(balances, user_id))


@router.post("/groups/{group_id}/balances/recalculate", response_model=ApiResponse[List[BalanceRowOut]])
def recalculate_balances(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Recompute a group's balances and return the refreshed cached rows"""
    get_member_group(db, group_id, user_id)
    recalculate_group_balances(db, group_id)

    rows = [to_balance_row(balance) for balance in get_group_balances(db, group_id)]
    return ApiResponse(data=rows, message="Balances recalculated successfully")


@router.get("/groups/{group_id}/balances/optimize", response_model=ApiResponse[GroupBalanceSummary])
def get_optimized_balances(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get the balance summary with the optimized settlement plan"""
    get_member_group(db, group_id, user_id)
    summary = get_group_balance_summary(db, group_id)
    return ApiResponse(data=summary, message="Balance optimization calculated successfully")


@router.post("/groups/{group_id}/balances/optimize", response_model=ApiResponse[GroupBalanceSummary])
def simulate_optimized_payment(
    group_id: str,
    request: SimulatePaymentRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Simulate one optimized payment; nothing is recorded"""
    get_member_group(db, group_id, user_id)
    summary = simulate_group_payment(db, group_id, request.payment_id)
    return ApiResponse(data=summary, message="Payment simulated successfully")


@router.get("/groups/{group_id}/balances/plan", response_model=ApiResponse[UserPaymentPlan])
def get_my_payment_plan(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get the payments the current user has to make and receive"""
    get_member_group(db, group_id, user_id)
    summary = get_group_balance_summary(db, group_id)
    return ApiResponse(data=get_user_payment_plan(user_id, summary))
