"""Presentation adapter keeping a local copy of the expenses in sync with the API.

The adapter owns an :class:`~expense_tracker.client.state.ExpenseState` and
replaces it after every request using the pure transitions from
:mod:`expense_tracker.client.state`. All failures are reported the same way,
through the ``notify`` callback, regardless of their kind; nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any, Protocol

from expense_tracker.errors import ExpenseError
from expense_tracker.schemas import Category, ExpenseCreate, ExpenseRead, ExpenseUpdate

from . import state as transitions
from .form import ExpenseForm
from .state import DELETE_ERROR_MESSAGE, SAVE_ERROR_MESSAGE, ExpenseState
from .view import ALL_CATEGORIES, DEFAULT_SORT, ExpenseView, derive_view

LOG = logging.getLogger(__name__)

Notifier = Callable[[str, str, str], None]
Confirm = Callable[[str], bool]


class ExpenseBackend(Protocol):
    def fetch_all(self) -> list[ExpenseRead]: ...

    def create_expense(self, expense: Any) -> ExpenseRead: ...

    def update_expense(self, expense_id: str, changes: Any) -> ExpenseRead: ...

    def delete_expense(self, expense_id: str) -> str: ...


def log_notification(title: str, description: str, variant: str = "default") -> None:
    level = logging.ERROR if variant == "destructive" else logging.INFO
    LOG.log(level, "%s: %s", title, description)


class ExpenseAdapter:
    """Drive mount / save / delete / edit flows against an expense backend."""

    def __init__(
        self,
        client: ExpenseBackend,
        notify: Notifier | None = None,
        confirm: Confirm | None = None,
    ) -> None:
        self.client = client
        self.state = ExpenseState()
        self._notify = notify or log_notification
        self._confirm = confirm or (lambda _expense_id: True)

    @property
    def total(self) -> Decimal:
        return self.state.total

    def mount(self) -> ExpenseState:
        """Load the full collection, replacing the local cache on success."""

        self.state = transitions.fetch_started(self.state)
        try:
            expenses = self.client.fetch_all()
        except ExpenseError as exc:
            LOG.error("Failed to fetch expenses: %s", exc)
            self.state = transitions.fetch_failed(self.state)
            return self.state
        self.state = transitions.fetch_succeeded(self.state, expenses)
        return self.state

    refresh = mount

    def save(self, expense: ExpenseCreate | ExpenseUpdate | Mapping[str, Any]) -> bool:
        """Create a record, or update the one being edited; ``True`` on success."""

        if self.state.is_submitting:
            LOG.debug("Ignoring save while another submission is in flight")
            return False
        self.state = transitions.submit_started(self.state)
        editing = self.state.editing
        try:
            if editing is not None:
                updated = self.client.update_expense(editing.id, expense)
                self.state = transitions.update_succeeded(self.state, updated)
                self._notify("Expense Updated", "Your expense has been successfully updated.", "default")
            else:
                created = self.client.create_expense(expense)
                self.state = transitions.create_succeeded(self.state, created)
                self._notify("Expense Added", "Your expense has been successfully added.", "default")
        except ExpenseError as exc:
            LOG.error("Failed to save expense: %s", exc)
            self._notify("Error", SAVE_ERROR_MESSAGE, "destructive")
            return False
        finally:
            self.state = transitions.submit_finished(self.state)
        return True

    def submit(self, form: ExpenseForm) -> dict[str, str]:
        """Validate ``form`` and save it.

        Returns the field errors (empty on success). The form is cleared after a
        successful create and left untouched otherwise.
        """

        errors = form.validate()
        if errors:
            return errors
        was_editing = self.state.editing is not None
        if not self.save(form.to_payload()):
            return {"form": SAVE_ERROR_MESSAGE}
        if not was_editing:
            form.reset()
        return {}

    def delete(self, expense_id: str) -> bool:
        """Ask for confirmation, then delete ``expense_id``; ``True`` on success."""

        if self.state.deleting_id == expense_id:
            LOG.debug("Ignoring duplicate delete for %s", expense_id)
            return False
        if not self._confirm(expense_id):
            return False
        self.state = transitions.delete_started(self.state, expense_id)
        try:
            self.client.delete_expense(expense_id)
            self.state = transitions.delete_succeeded(self.state, expense_id)
            self._notify("Expense Deleted", "The expense has been removed.", "default")
        except ExpenseError as exc:
            LOG.error("Failed to delete expense %s: %s", expense_id, exc)
            self._notify("Error", DELETE_ERROR_MESSAGE, "destructive")
            return False
        finally:
            self.state = transitions.delete_finished(self.state)
        return True

    def start_editing(self, expense: ExpenseRead) -> ExpenseForm:
        self.state = transitions.start_editing(self.state, expense)
        return ExpenseForm.from_record(expense)

    def cancel_editing(self) -> None:
        self.state = transitions.cancel_editing(self.state)

    def view(
        self,
        category_filter: Category | str | None = ALL_CATEGORIES,
        sort_key: str = DEFAULT_SORT,
    ) -> ExpenseView:
        return derive_view(self.state.expenses, category_filter, sort_key)


__all__ = ["ExpenseAdapter", "ExpenseBackend", "log_notification"]
