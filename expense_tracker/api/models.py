"""SQLAlchemy models for the expense tracking backend."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Float, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.types import TypeDecorator

from expense_tracker.schemas import TITLE_MAX_LENGTH, Category, amount_from_float, utcnow

from .database import Base


def new_expense_id() -> str:
    """Return a fresh opaque identifier (32 lowercase hex characters)."""
    return uuid.uuid4().hex


class AmountType(TypeDecorator):
    """Double precision column handing out ``Decimal`` values."""

    impl = Float
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else float(value)

    def process_result_value(self, value, dialect):
        return None if value is None else amount_from_float(value)


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String(32), primary_key=True, default=new_expense_id)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    amount = Column(AmountType(), nullable=False)
    category = Column(
        SAEnum(
            Category,
            name="expense_category",
            native_enum=False,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
        index=True,
    )
    date = Column(DateTime, nullable=False, default=utcnow, index=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"Expense(id={self.id!r}, title={self.title!r}, amount={self.amount!r})"
