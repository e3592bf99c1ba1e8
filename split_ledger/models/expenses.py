import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, DECIMAL, ForeignKey, Integer
from sqlalchemy.orm import relationship
from split_ledger.db.database import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    group_id = Column(String, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    total_amount = Column(DECIMAL(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    paid_by = Column(String, nullable=False, index=True)  # Reference to users
    split_type = Column(String(20), nullable=False, default="EQUAL")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    splits = relationship("ExpenseSplit", back_populates="expense", cascade="all, delete-orphan",
                          order_by="ExpenseSplit.position")


class ExpenseSplit(Base):
    __tablename__ = "expense_splits"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    expense_id = Column(String, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)  # Reference to users
    amount = Column(DECIMAL(10, 2), nullable=False)
    position = Column(Integer, nullable=False, default=0)  # Split order within the expense

    expense = relationship("Expense", back_populates="splits")
