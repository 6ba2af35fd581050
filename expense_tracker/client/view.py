"""Derived, on-demand views over the locally cached expenses."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from operator import attrgetter
from typing import Final

from expense_tracker.schemas import Category, ExpenseRead

ALL_CATEGORIES: Final[str] = "all"
DEFAULT_SORT: Final[str] = "date-desc"
SORT_KEYS: Final[dict[str, tuple[str, bool]]] = {
    "date-desc": ("date", True),
    "date-asc": ("date", False),
    "amount-desc": ("amount", True),
    "amount-asc": ("amount", False),
}


@dataclass(frozen=True, slots=True)
class ExpenseView:
    """Filtered and ordered projection plus the total of its amounts."""

    records: tuple[ExpenseRead, ...]
    total: Decimal

    @property
    def count(self) -> int:
        return len(self.records)


def derive_view(
    records: Iterable[ExpenseRead],
    category_filter: Category | str | None = ALL_CATEGORIES,
    sort_key: str = DEFAULT_SORT,
) -> ExpenseView:
    """Filter ``records`` by category and order them by ``sort_key``.

    The sort is stable, so records with equal keys keep their incoming order.
    ``records`` is never mutated.

    Raises:
        ValueError: If ``sort_key`` or ``category_filter`` is not recognised.
    """

    try:
        field, descending = SORT_KEYS[sort_key]
    except KeyError as exc:
        raise ValueError(f"Unknown sort key {sort_key!r}; expected one of {', '.join(SORT_KEYS)}") from exc

    selected = list(records)
    if category_filter is not None and category_filter != ALL_CATEGORIES:
        category = Category(category_filter)
        selected = [record for record in selected if record.category == category]

    ordered = tuple(sorted(selected, key=attrgetter(field), reverse=descending))
    total = sum((record.amount for record in ordered), Decimal("0"))
    return ExpenseView(records=ordered, total=total)


__all__ = ["ALL_CATEGORIES", "DEFAULT_SORT", "SORT_KEYS", "ExpenseView", "derive_view"]
