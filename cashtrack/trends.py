from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, NamedTuple, Sequence

from cashtrack.aggregation import ZERO, by_month, net_savings, total
from cashtrack.domain import Period, Transaction
from cashtrack.filters import in_year, iter_transactions

TREND_WINDOW = 3
FLAT_THRESHOLD = Decimal(5)

UP = "up"
DOWN = "down"
FLAT = "flat"


class MonthlySeries(NamedTuple):
    income: list[Decimal]
    expenses: list[Decimal]
    savings: list[Decimal]


def monthly_series(
    income: Iterable[Transaction], expenses: Iterable[Transaction], year: int
) -> MonthlySeries:
    inc = by_month(iter_transactions(income, in_year(year)))
    exp = by_month(iter_transactions(expenses, in_year(year)))
    return MonthlySeries(inc, exp, [net_savings(i, e) for i, e in zip(inc, exp)])


class TrendDelta(NamedTuple):
    percent: Decimal
    direction: str


def classify(percent: Decimal) -> str:
    if percent > FLAT_THRESHOLD:
        return UP
    if percent < -FLAT_THRESHOLD:
        return DOWN
    return FLAT


def trend_delta(buckets: Sequence[Decimal], reference_index: int) -> TrendDelta:
    """Compare the 3 buckets ending at reference_index with the 3 before them.

    Windows running past the start of the series are cut at index 0. A
    previous window summing to 0 gives 0% rather than infinite growth.
    """
    end = reference_index + 1
    recent = sum(buckets[max(0, end - TREND_WINDOW):end], ZERO)
    previous = sum(buckets[max(0, end - 2 * TREND_WINDOW):max(0, end - TREND_WINDOW)], ZERO)
    if previous == 0:
        return TrendDelta(ZERO, FLAT)
    percent = (recent - previous) / previous * 100
    return TrendDelta(percent, classify(percent))


def projection(trans: Iterable[Transaction], months_elapsed: int) -> Decimal:
    """Average per elapsed month, extrapolated to a full year."""
    if months_elapsed <= 0:
        return ZERO
    return total(trans) / months_elapsed * 12


@dataclass(frozen=True)
class Projection:
    income: Decimal
    expenses: Decimal
    savings: Decimal
    savings_rate: Decimal  # percent of projected income


def annual_projection(
    income: Iterable[Transaction], expenses: Iterable[Transaction], months_elapsed: int
) -> Projection:
    inc = projection(income, months_elapsed)
    exp = projection(expenses, months_elapsed)
    savings = inc - exp
    rate = savings / inc * 100 if inc > 0 else ZERO
    return Projection(inc, exp, savings, rate)


def months_elapsed(year: int, today: date) -> int:
    if year < today.year:
        return 12
    if year > today.year:
        return 0
    return today.month


@dataclass(frozen=True)
class WaterfallBar:
    label: str
    delta: Decimal
    running_total: Decimal
    is_total: bool = False

    @property
    def magnitude(self) -> Decimal:
        return abs(self.delta)

    @property
    def direction(self) -> str:
        return DOWN if self.delta < 0 else UP


def waterfall(total_income: Decimal, category_totals: Mapping[str, Decimal]) -> list[WaterfallBar]:
    """Income, minus each category in the mapping's order, down to net."""
    running = total_income
    bars = [WaterfallBar("Income", total_income, running, is_total=True)]
    for cat, amount in category_totals.items():
        running -= amount
        bars.append(WaterfallBar(cat, -amount, running))
    bars.append(WaterfallBar("Net", running, running, is_total=True))
    return bars


def order_by_registry(
    category_totals: Mapping[str, Decimal], registry_names: Iterable[str]
) -> dict[str, Decimal]:
    """Registry order first, then names the registry does not know."""
    ordered = {n: category_totals[n] for n in registry_names if n in category_totals}
    for n, amount in category_totals.items():
        ordered.setdefault(n, amount)
    return ordered


def rolling_periods(end: Period, count: int) -> list[Period]:
    """The count periods ending at end (inclusive), oldest first."""
    return [end.shift(-i) for i in range(count - 1, -1, -1)]
