from pydantic import Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum

from split_ledger.schemas.balance_schema import CamelModel, Money, SplitInput


class SplitType(str, Enum):
    EQUAL = "EQUAL"
    PERCENTAGE = "PERCENTAGE"
    CUSTOM = "CUSTOM"

    @classmethod
    def _missing_(cls, value):
        # Stored rows and older clients use lowercase names
        if isinstance(value, str):
            for member in cls:
                if member.value == value.upper():
                    return member
        return None


class SplitParticipant(CamelModel):
    user_id: str
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    custom_amount: Optional[Decimal] = Field(None, ge=0)


class ExpenseCreate(CamelModel):
    title: str = Field(..., max_length=200)
    total_amount: Money = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    split_type: SplitType = SplitType.EQUAL
    participants: List[SplitParticipant] = []
    splits: Optional[List[SplitInput]] = None


class ExpenseUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    total_amount: Optional[Money] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    splits: Optional[List[SplitInput]] = None


class ExpenseSplitOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    amount: Money


class ExpenseOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    title: str
    total_amount: Money
    currency: str
    paid_by: str
    split_type: SplitType
    created_at: datetime
    splits: List[ExpenseSplitOut] = []


class SplitPreviewRequest(CamelModel):
    total_amount: Money = Field(..., ge=0)
    # Left as a string so an unknown type is reported by the calculator
    split_type: str
    participants: List[SplitParticipant]
