"""Expense form state and field validation.

The form keeps raw text as typed by the user. :meth:`ExpenseForm.validate`
produces one message per invalid field, and :meth:`ExpenseForm.to_payload`
turns a valid form into the :class:`~expense_tracker.schemas.ExpenseCreate`
sent to the service.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation

from expense_tracker.errors import ValidationError
from expense_tracker.schemas import TITLE_MAX_LENGTH, Category, ExpenseCreate, ExpenseRead

from .formatting import format_date_for_input, today_for_input


def _parse_amount(text: str) -> Decimal | None:
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


@dataclass
class ExpenseForm:
    title: str = ""
    amount: str = ""
    category: str = ""
    date: str = field(default_factory=today_for_input)
    notes: str = ""
    # Full timestamp of the record being edited; the date input only shows its day.
    source_date: datetime | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_record(cls, record: ExpenseRead) -> ExpenseForm:
        """Pre-fill the form with an existing record for editing."""

        return cls(
            title=record.title,
            amount=str(record.amount),
            category=record.category.value,
            date=format_date_for_input(record.date),
            notes=record.notes or "",
            source_date=record.date,
        )

    def reset(self) -> None:
        self.title = ""
        self.amount = ""
        self.category = ""
        self.date = today_for_input()
        self.notes = ""
        self.source_date = None

    def validate(self) -> dict[str, str]:
        """Return a mapping of field name to error message; empty when valid."""

        errors: dict[str, str] = {}

        title = self.title.strip()
        if not title:
            errors["title"] = "Title is required"
        elif len(title) > TITLE_MAX_LENGTH:
            errors["title"] = f"Title must be at most {TITLE_MAX_LENGTH} characters"

        if not self.amount.strip():
            errors["amount"] = "Amount is required"
        else:
            amount = _parse_amount(self.amount)
            if amount is None or not 0 < float(amount) < math.inf:
                errors["amount"] = "Please enter a valid positive amount"

        if not self.category:
            errors["category"] = "Category is required"
        elif self.category not in {member.value for member in Category}:
            errors["category"] = "Please choose a valid category"

        if not self.date.strip():
            errors["date"] = "Date is required"
        else:
            try:
                datetime.fromisoformat(self.date.strip())
            except ValueError:
                errors["date"] = "Please enter a valid date"

        return errors

    def _payload_date(self) -> datetime:
        text = self.date.strip()
        if self.source_date is not None and format_date_for_input(self.source_date) == text:
            return self.source_date
        return datetime.fromisoformat(text)

    def to_payload(self) -> ExpenseCreate:
        """Build the create/update payload, raising ``ValidationError`` when invalid."""

        errors = self.validate()
        if errors:
            raise ValidationError("; ".join(errors.values()))
        return ExpenseCreate(
            title=self.title.strip(),
            amount=Decimal(self.amount.strip()),
            category=Category(self.category),
            date=self._payload_date(),
            notes=self.notes.strip(),
        )


__all__ = ["ExpenseForm"]
