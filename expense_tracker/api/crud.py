"""Expense store operations for the expense tracking backend.

Every write goes through the pydantic schemas in :mod:`expense_tracker.schemas`
so the store enforces the same rules whether it is called by the REST service
or directly from Python. Identifiers are checked for well-formedness before the
database is queried, which keeps malformed ids (``InvalidIdError``) distinct
from unknown ones (``NotFoundError``).
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, List, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session

from expense_tracker import schemas
from expense_tracker.errors import InvalidIdError, NotFoundError, ValidationError

from . import models

LOG = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"[0-9a-fA-F]{32}")
# Largest OFFSET a signed 64-bit SQL integer can carry.
_MAX_OFFSET = 2**63 - 1


def is_valid_id(expense_id: object) -> bool:
    """Return ``True`` when ``expense_id`` looks like an id issued by the store."""

    return isinstance(expense_id, str) and _ID_PATTERN.fullmatch(expense_id) is not None


def _checked_id(expense_id: object) -> str:
    if not is_valid_id(expense_id):
        raise InvalidIdError()
    return str(expense_id).lower()


def _validate(model: type[BaseModel], fields: Any) -> Any:
    if isinstance(fields, model):
        return fields
    if not isinstance(fields, Mapping):
        raise ValidationError("Expense data must be an object")
    try:
        return model.model_validate(dict(fields))
    except PydanticValidationError as exc:
        raise ValidationError(schemas.describe_errors(exc.errors())) from exc


def _next_timestamp(previous: Optional[datetime]) -> datetime:
    """Return "now", nudged forward so ``updated_at`` never repeats."""

    now = schemas.utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def create_expense(
    session: Session,
    fields: Union[Mapping[str, Any], schemas.ExpenseCreate],
) -> models.Expense:
    expense_in: schemas.ExpenseCreate = _validate(schemas.ExpenseCreate, fields)
    data = expense_in.model_dump()
    now = schemas.utcnow()
    if data.get("date") is None:
        data["date"] = now
    expense = models.Expense(id=models.new_expense_id(), created_at=now, updated_at=now, **data)
    session.add(expense)
    session.flush()
    session.refresh(expense)
    LOG.info("Created expense %s", expense.id, extra={"expense_id": expense.id})
    return expense


def get_expense(session: Session, expense_id: str) -> models.Expense:
    expense = session.get(models.Expense, _checked_id(expense_id))
    if expense is None:
        raise NotFoundError()
    return expense


def list_expenses(
    session: Session,
    query: Optional[schemas.ExpenseQuery] = None,
    **criteria: Any,
) -> List[models.Expense]:
    """Return one page of expenses matching ``query``.

    ``criteria`` is a shortcut for building the query inline, for example
    ``list_expenses(session, category="food", sort_by="amount")``.
    """

    if query is None:
        query = _validate(schemas.ExpenseQuery, criteria)
    offset = (query.page - 1) * query.limit
    if offset > _MAX_OFFSET:
        return []
    direction = desc if query.order == "desc" else asc
    sort_column = models.Expense.amount if query.sort_by == "amount" else models.Expense.date

    stmt = select(models.Expense)
    if query.category is not None:
        stmt = stmt.where(models.Expense.category == query.category)
    stmt = (
        stmt.order_by(
            direction(sort_column),
            direction(models.Expense.created_at),
            direction(models.Expense.id),
        )
        .offset(offset)
        .limit(query.limit)
    )
    return list(session.scalars(stmt))


def update_expense(
    session: Session,
    expense_id: str,
    update_in: Union[Mapping[str, Any], schemas.ExpenseUpdate],
) -> models.Expense:
    expense = get_expense(session, expense_id)
    changes: schemas.ExpenseUpdate = _validate(schemas.ExpenseUpdate, update_in)
    for field, value in changes.model_dump(exclude_unset=True).items():
        setattr(expense, field, value)
    expense.updated_at = _next_timestamp(expense.updated_at)
    session.flush()
    session.refresh(expense)
    LOG.info("Updated expense %s", expense.id, extra={"expense_id": expense.id})
    return expense


def delete_expense(session: Session, expense_id: str) -> None:
    expense = get_expense(session, expense_id)
    session.delete(expense)
    session.flush()
    LOG.info("Deleted expense %s", expense.id, extra={"expense_id": expense.id})


def expense_summary(session: Session) -> schemas.SummaryRead:
    total_stmt = select(func.coalesce(func.sum(models.Expense.amount), 0))
    total_value = Decimal(str(session.scalar(total_stmt) or 0))

    by_category_stmt = (
        select(
            models.Expense.category,
            func.coalesce(func.sum(models.Expense.amount), 0).label("total"),
        )
        .group_by(models.Expense.category)
        .order_by(models.Expense.category)
    )
    by_category = [
        schemas.CategorySummary(category=row.category, total=Decimal(str(row.total)))
        for row in session.execute(by_category_stmt)
    ]
    return schemas.SummaryRead(total=total_value, by_category=by_category)
