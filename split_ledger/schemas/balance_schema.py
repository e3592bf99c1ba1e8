from pydantic import BaseModel, Field, ConfigDict, PlainSerializer, computed_field
from pydantic.alias_generators import to_camel
from typing import Annotated, Generic, Optional, List, TypeVar
from datetime import datetime
from decimal import Decimal


T = TypeVar("T")

# Amounts stay Decimal in Python and are rendered as JSON numbers on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class UserInput(CamelModel):
    id: str
    full_name: Optional[str] = None
    email: str

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class SplitInput(CamelModel):
    user_id: str
    amount: Money = Field(..., ge=0)


class ExpenseInput(CamelModel):
    id: str
    total_amount: Money = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    paid_by: str
    splits: List[SplitInput] = []


class UserBalance(CamelModel):
    user_id: str
    user_name: str
    email: str
    total_owed: Money = Field(..., ge=0)
    total_owing: Money = Field(..., ge=0)
    net_balance: Money


class DebtRelationship(CamelModel):
    from_user_id: str
    from_user_name: str
    to_user_id: str
    to_user_name: str
    amount: Money
    currency: str = "USD"


class OptimizedPayment(CamelModel):
    from_user_id: str
    from_user_name: str
    to_user_id: str
    to_user_name: str
    amount: Money
    currency: str = "USD"
    description: str = ""

    @computed_field(alias="paymentId")
    @property
    def payment_id(self) -> str:
        return f"{self.from_user_id}-{self.to_user_id}"


class GroupBalanceSummary(CamelModel):
    group_id: str = ""
    group_name: str = ""
    currency: str = "USD"
    total_expenses: Money = Decimal("0")
    user_balances: List[UserBalance] = []
    debt_relationships: List[DebtRelationship] = []
    optimized_payments: List[OptimizedPayment] = []
    is_settled: bool = True


class UserPaymentPlan(CamelModel):
    user_id: str
    payments_to_make: List[OptimizedPayment] = []
    payments_to_receive: List[OptimizedPayment] = []
    net_amount: Money = Decimal("0")


class SimulatePaymentRequest(CamelModel):
    payment_id: Optional[str] = None


class BalanceUserOut(CamelModel):
    id: str
    name: str
    email: str


class BalanceRowOut(CamelModel):
    """One cached debt relationship as stored in the balances table."""
    id: str
    group_id: str
    group_name: Optional[str] = None
    from_user: BalanceUserOut
    to_user: BalanceUserOut
    amount: Money
    currency: str
    updated_at: Optional[datetime] = None


class UserBalanceOverview(CamelModel):
    total_owed: Money = Decimal("0")
    total_owing: Money = Decimal("0")
    net_balance: Money = Decimal("0")
    balances: List[BalanceRowOut] = []


class ApiResponse(CamelModel, Generic[T]):
    data: T
    message: Optional[str] = None
