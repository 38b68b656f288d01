from datetime import date
from typing import Callable, Iterable, Iterator, TypeVar

from cashtrack.domain import Expense, Period, Transaction

T = TypeVar("T", bound=Transaction)


def iter_transactions(trans: Iterable[T], pred: Callable[[T], bool]) -> Iterator[T]:
    for t in trans:
        if pred(t):
            yield t


def by_category(category: str):
    def _filter(t: Transaction) -> bool:
        return isinstance(t, Expense) and t.category == category

    return _filter


def by_date_range(start: date, end: date):
    """Half-open range: start <= date < end."""
    def _filter(t: Transaction) -> bool:
        return start <= t.date < end

    return _filter


def in_period(period: Period):
    return by_date_range(period.start, period.end)


def in_year(year: int):
    def _filter(t: Transaction) -> bool:
        return t.date.year == year

    return _filter


def recurring_only(t: Transaction) -> bool:
    return t.recurring
