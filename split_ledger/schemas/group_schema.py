from pydantic import Field, ConfigDict
from typing import Optional, List
from datetime import datetime

from split_ledger.schemas.balance_schema import CamelModel


class UserCreate(CamelModel):
    full_name: Optional[str] = Field(None, max_length=100)
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")


class UserOut(UserCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime


class GroupBase(CamelModel):
    name: str = Field(..., max_length=100)


class GroupCreate(GroupBase):
    pass


class GroupOut(GroupBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_by: str
    created_at: datetime


class GroupMemberCreate(CamelModel):
    user_id: str


class GroupMemberOut(GroupMemberCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    joined_at: datetime


class GroupWithMembers(GroupOut):
    members: List[GroupMemberOut] = []
