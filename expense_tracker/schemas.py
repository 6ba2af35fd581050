"""Pydantic schemas for validating and serialising expense tracking data.

The same models are used by the store to validate writes, by the REST service
to shape its envelopes and by the client to parse responses, so the wire
aliases (``_id``, ``createdAt``, ``updatedAt``) are accepted on input and
emitted on output.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    StringConstraints,
    field_validator,
)

TITLE_MAX_LENGTH = 100


class Category(str, Enum):
    """Closed set of labels classifying an expense."""

    FOOD = "food"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    UTILITIES = "utilities"
    HEALTH = "health"
    OTHER = "other"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    Category.FOOD: "Food & Dining",
    Category.TRANSPORT: "Transportation",
    Category.ENTERTAINMENT: "Entertainment",
    Category.SHOPPING: "Shopping",
    Category.UTILITIES: "Utilities & Bills",
    Category.HEALTH: "Health & Medical",
    Category.OTHER: "Other",
}

SortField = Literal["date", "amount"]
SortOrder = Literal["asc", "desc"]

Title = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=TITLE_MAX_LENGTH),
]
Notes = Annotated[str, StringConstraints(strip_whitespace=True)]
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def amount_from_float(value: float) -> Decimal:
    """Shortest decimal spelling of a stored double, so ``0.1`` reads back as ``0.1``."""

    return Decimal(repr(float(value)))


def _as_stored_amount(value: Decimal) -> Decimal:
    # Amounts are kept as doubles; reject what a double cannot hold as a positive number.
    stored = float(value)
    if not math.isfinite(stored) or stored <= 0:
        raise ValueError("amount is out of range")
    rounded = amount_from_float(stored)
    # Keep the caller's spelling ("15.00") when the double holds it exactly.
    return value if rounded == value else rounded


Amount = Annotated[
    Decimal,
    Field(gt=0),
    AfterValidator(_as_stored_amount),
    PlainSerializer(float, return_type=float, when_used="json"),
]


def to_naive_utc(value: datetime) -> datetime:
    """Store timestamps as naive UTC so SQLite round trips stay comparable."""

    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def describe_errors(errors: Iterable[Mapping[str, Any]]) -> str:
    """Turn pydantic error entries into a short, user-facing message."""

    messages: list[str] = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        if error.get("type") == "missing":
            messages.append(f"{field.capitalize()} is required")
        else:
            messages.append(f"{field}: {error.get('msg')}")
    return "; ".join(messages) or "Invalid expense data"


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ExpenseBase(BaseModel):
    title: Title
    amount: Amount
    category: Category
    date: Optional[datetime] = None
    notes: Notes = ""

    @field_validator("date")
    @classmethod
    def _normalise_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return None if value is None else to_naive_utc(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _empty_notes(cls, value: Any) -> Any:
        return "" if value is None else value


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(BaseModel):
    title: Optional[Title] = None
    amount: Optional[Amount] = None
    category: Optional[Category] = None
    date: Optional[datetime] = None
    notes: Optional[Notes] = None

    @field_validator("title", "amount", "category", "date", mode="before")
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("cannot be null")
        return value

    @field_validator("date")
    @classmethod
    def _normalise_date(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _empty_notes(cls, value: Any) -> Any:
        return "" if value is None else value


class ExpenseRead(ORMModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"), serialization_alias="_id")
    title: str
    amount: Money
    category: Category
    date: datetime
    notes: str = ""
    created_at: datetime = Field(
        validation_alias=AliasChoices("created_at", "createdAt"),
        serialization_alias="createdAt",
    )
    updated_at: datetime = Field(
        validation_alias=AliasChoices("updated_at", "updatedAt"),
        serialization_alias="updatedAt",
    )

    @field_validator("notes", mode="before")
    @classmethod
    def _empty_notes(cls, value: Any) -> Any:
        return "" if value is None else value


class ExpenseQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    category: Optional[Category] = None
    sort_by: SortField = "date"
    order: SortOrder = "desc"


class ExpenseEnvelope(BaseModel):
    success: bool = True
    data: ExpenseRead


class ExpenseListEnvelope(BaseModel):
    success: bool = True
    count: int
    data: List[ExpenseRead]


class MessageEnvelope(BaseModel):
    success: bool
    message: str


class CategorySummary(BaseModel):
    category: Category
    total: Money


class SummaryRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: Money
    by_category: List[CategorySummary] = Field(
        validation_alias=AliasChoices("by_category", "byCategory"),
        serialization_alias="byCategory",
    )


class SummaryEnvelope(BaseModel):
    success: bool = True
    data: SummaryRead
