"""Display helpers for dates and amounts."""

from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

DISPLAY_DATE_FORMAT: Final[str] = "%b %d, %Y"
CURRENCY_SYMBOLS: Final[dict[str, str]] = {"USD": "$", "EUR": "€", "GBP": "£", "INR": "₹"}


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


def format_date(value: str | date | datetime, fmt: str = DISPLAY_DATE_FORMAT) -> str:
    """Render ``value`` like ``Jan 05, 2024``; unparsable strings come back unchanged."""

    if isinstance(value, str):
        try:
            value = _parse(value)
        except ValueError:
            return value
    return value.strftime(fmt)


def format_date_for_input(value: str | date | datetime) -> str:
    """Return the ``YYYY-MM-DD`` part used by date inputs."""

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value.split("T")[0]


def today_for_input() -> str:
    return datetime.now(UTC).date().isoformat()


def format_currency(amount: Decimal | float | int, currency: str = "USD") -> str:
    """Format ``amount`` in en-US style, e.g. ``$1,234.50`` or ``-$3.00``."""

    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


__all__ = ["format_currency", "format_date", "format_date_for_input", "today_for_input"]
