from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from split_ledger.api.v1.dependencies import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.group_service import create_user, get_user
from split_ledger.schemas.group_schema import UserCreate, UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserOut)
def register_user(user_data: UserCreate, db: Session = Depends(get_db)):
    """Create a user"""
    return create_user(db, user_data)


@router.get("/me", response_model=UserOut)
def get_me(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get the current user"""
    user = get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
