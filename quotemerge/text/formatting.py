"""Formatting of quote values for display in agreements."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

Number = Union[int, float, Decimal]

NOT_AVAILABLE = "N/A"

_ONES = (
    "Zero", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight",
    "Nine", "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen",
    "Sixteen", "Seventeen", "Eighteen", "Nineteen", "Twenty",
)
_TENS = {
    2: "Twenty", 3: "Thirty", 4: "Forty", 5: "Fifty",
    6: "Sixty", 7: "Seventy", 8: "Eighty", 9: "Ninety",
}


def format_currency(amount: Optional[Number], symbol: str = "$") -> str:
    """
    Format an amount with a currency symbol, thousands separators and no decimals.

    Halves round away from zero, so ``format_currency(1199.5) == "$1,200"``.
    Missing or non-numeric amounts render as ``N/A``.
    """
    if amount is None:
        return NOT_AVAILABLE
    try:
        value = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return NOT_AVAILABLE
    if not value.is_finite():
        return NOT_AVAILABLE
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(int(value)):,}"


def per_unit_cost(total: Optional[Number], units: Optional[Number]) -> str:
    """Currency-formatted ``total / units``, or ``N/A`` when there are no units."""
    if total is None or not units:
        return NOT_AVAILABLE
    return format_currency(Decimal(str(total)) / Decimal(str(units)))


def number_to_word(value: int) -> str:
    """
    Spell out a count: 0-20 as words, 21-99 as ``Tens-Ones``, otherwise digits.

    >>> number_to_word(6)
    'Six'
    >>> number_to_word(36)
    'Thirty-Six'
    """
    if 0 <= value <= 20:
        return _ONES[value]
    if 21 <= value <= 99:
        tens, ones = divmod(value, 10)
        if ones == 0:
            return _TENS[tens]
        return f"{_TENS[tens]}-{_ONES[ones]}"
    return str(value)


def format_duration(months: int) -> str:
    """``6`` -> ``6 months (Six)``."""
    unit = "month" if months == 1 else "months"
    return f"{months} {unit} ({number_to_word(months)})"


def validity_phrase(months: int) -> str:
    unit = "Month" if months == 1 else "Months"
    return f"Valid for {number_to_word(months)} {unit}"


def format_long_date(value: Optional[Union[date, datetime]] = None) -> str:
    """``March 5, 2025``; today when ``value`` is None."""
    value = value or date.today()
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_short_date(value: Optional[str]) -> str:
    """Render an ISO date string as ``MM/DD/YYYY``; ``N/A`` when missing."""
    if not value:
        return NOT_AVAILABLE
    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    return parsed.strftime("%m/%d/%Y")


def format_number(value: Optional[Number]) -> str:
    """Whole numbers without decimals, others with up to two."""
    if value is None:
        return NOT_AVAILABLE
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{float(value):,.2f}".rstrip("0").rstrip(".")
