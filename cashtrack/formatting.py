from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from cashtrack.domain import Period

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "INR": "₹", "JPY": "¥"}

Number = Union[Decimal, int, float]


def format_currency(amount: Number, currency: str = "USD") -> str:
    """Format amount with a currency symbol and 2 decimal places.

    Args:
        amount: The amount to format
        currency: ISO currency code; unknown codes are used as a prefix

    Returns:
        Formatted string, e.g. "$1,234.56" or "-$12.00"
    """
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_percent(value: Number, places: int = 1) -> str:
    return f"{Decimal(str(value)):.{places}f}%"


def format_date(d: date) -> str:
    """e.g. "Mar 1, 2026"."""
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def month_options(today: date, back: int = 12, ahead: int = 3) -> list[Period]:
    """Periods offered in the month picker, oldest first."""
    current = Period.of(today)
    return [current.shift(i) for i in range(-back, ahead + 1)]
