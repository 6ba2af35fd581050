"""Client side of the expense tracker: HTTP client, local state and derived views."""

from .adapter import ExpenseAdapter
from .form import ExpenseForm
from .http import ExpenseClient
from .state import ExpenseState
from .view import ExpenseView, derive_view

__all__ = [
    "ExpenseAdapter",
    "ExpenseClient",
    "ExpenseForm",
    "ExpenseState",
    "ExpenseView",
    "derive_view",
]
