"""Client-side expense state and the pure transitions applied to it.

:class:`ExpenseState` is immutable; every transition returns a new instance so
the adapter can swap its reference atomically and tests can exercise each
step without a backend or a rendering environment.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal

from expense_tracker.schemas import ExpenseRead

LOAD_ERROR_MESSAGE = "Failed to load expenses. Please check if the backend server is running."
SAVE_ERROR_MESSAGE = "Failed to save expense. Please try again."
DELETE_ERROR_MESSAGE = "Failed to delete expense. Please try again."


@dataclass(frozen=True, slots=True)
class ExpenseState:
    """Snapshot of the locally cached collection and in-flight flags.

    Attributes:
      expenses: Local copy of the collection, newest first after a create.
      editing: Record currently loaded in the form, if any.
      is_loading: ``True`` while the collection is being fetched.
      is_submitting: ``True`` while a create or update is in flight.
      deleting_id: Id of the record whose deletion is in flight.
      error: Last load error message shown to the user.
    """

    expenses: tuple[ExpenseRead, ...] = ()
    editing: ExpenseRead | None = None
    is_loading: bool = False
    is_submitting: bool = False
    deleting_id: str | None = None
    error: str | None = None

    @property
    def total(self) -> Decimal:
        return sum((expense.amount for expense in self.expenses), Decimal("0"))

    def find(self, expense_id: str) -> ExpenseRead | None:
        for expense in self.expenses:
            if expense.id == expense_id:
                return expense
        return None


def fetch_started(state: ExpenseState) -> ExpenseState:
    return replace(state, is_loading=True, error=None)


def fetch_succeeded(state: ExpenseState, expenses: Iterable[ExpenseRead]) -> ExpenseState:
    return replace(state, expenses=tuple(expenses), is_loading=False, error=None)


def fetch_failed(state: ExpenseState, message: str = LOAD_ERROR_MESSAGE) -> ExpenseState:
    return replace(state, is_loading=False, error=message)


def submit_started(state: ExpenseState) -> ExpenseState:
    return replace(state, is_submitting=True)


def submit_finished(state: ExpenseState) -> ExpenseState:
    return replace(state, is_submitting=False)


def create_succeeded(state: ExpenseState, created: ExpenseRead) -> ExpenseState:
    return replace(state, expenses=(created, *state.expenses), error=None)


def update_succeeded(state: ExpenseState, updated: ExpenseRead) -> ExpenseState:
    expenses = tuple(updated if expense.id == updated.id else expense for expense in state.expenses)
    return replace(state, expenses=expenses, editing=None, error=None)


def delete_started(state: ExpenseState, expense_id: str) -> ExpenseState:
    return replace(state, deleting_id=expense_id)


def delete_succeeded(state: ExpenseState, expense_id: str) -> ExpenseState:
    expenses = tuple(expense for expense in state.expenses if expense.id != expense_id)
    editing = None if state.editing is not None and state.editing.id == expense_id else state.editing
    return replace(state, expenses=expenses, editing=editing, error=None)


def delete_finished(state: ExpenseState) -> ExpenseState:
    return replace(state, deleting_id=None)


def start_editing(state: ExpenseState, expense: ExpenseRead) -> ExpenseState:
    return replace(state, editing=expense)


def cancel_editing(state: ExpenseState) -> ExpenseState:
    return replace(state, editing=None)


__all__ = [
    "DELETE_ERROR_MESSAGE",
    "ExpenseState",
    "LOAD_ERROR_MESSAGE",
    "SAVE_ERROR_MESSAGE",
    "cancel_editing",
    "create_succeeded",
    "delete_finished",
    "delete_started",
    "delete_succeeded",
    "fetch_failed",
    "fetch_started",
    "fetch_succeeded",
    "start_editing",
    "submit_finished",
    "submit_started",
    "update_succeeded",
]
