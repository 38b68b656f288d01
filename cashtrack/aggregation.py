from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from functools import reduce
from typing import Iterable, Iterator, Mapping, Sequence

from cashtrack.domain import Expense, Transaction
from cashtrack.filters import by_category as by_category_filter
from cashtrack.filters import iter_transactions

ZERO = Decimal(0)
OTHER = "Other"
ALL_CATEGORIES = "all"


def total(trans: Iterable[Transaction]) -> Decimal:
    return reduce(lambda acc, t: acc + t.amount, trans, ZERO)


def by_category(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Sum expenses per category, in first-seen order.

    Expenses without a category are counted under "Other".
    """
    totals: dict[str, Decimal] = {}
    for e in expenses:
        cat = getattr(e, "category", "") or OTHER
        totals[cat] = totals.get(cat, ZERO) + e.amount
    return totals


def by_month(trans: Iterable[Transaction]) -> list[Decimal]:
    """Twelve monthly sums indexed by date.month - 1.

    The year is not looked at: filter to one year first (see
    filters.in_year), otherwise March 2025 and March 2026 share a bucket.
    """
    buckets = [ZERO] * 12
    for t in trans:
        buckets[t.date.month - 1] += t.amount
    return buckets


def net_savings(income_total: Decimal, expense_total: Decimal) -> Decimal:
    return income_total - expense_total


def available_savings(income_total: Decimal, bill_total: Decimal) -> Decimal:
    return income_total - bill_total


def spending_ratio(expense_total: Decimal, income_total: Decimal) -> Decimal:
    """Share of income spent, clamped to [0, 1]; 0 without income."""
    if income_total <= 0:
        return ZERO
    return min(max(expense_total / income_total, ZERO), Decimal(1))


@dataclass(frozen=True)
class PeriodSummary:
    total_income: Decimal
    total_expenses: Decimal
    total_bills: Decimal
    net_savings: Decimal
    available_savings: Decimal
    spending_ratio: Decimal


def summarize(
    income: Iterable[Transaction],
    expenses: Iterable[Transaction],
    bills: Iterable[Transaction],
) -> PeriodSummary:
    inc, exp, bill = total(income), total(expenses), total(bills)
    return PeriodSummary(
        total_income=inc,
        total_expenses=exp,
        total_bills=bill,
        net_savings=net_savings(inc, exp),
        available_savings=available_savings(inc, bill),
        spending_ratio=spending_ratio(exp, inc),
    )


def filter_by_category(expenses: Sequence[Expense], category: str) -> list[Expense]:
    if category == ALL_CATEGORIES:
        return list(expenses)
    return list(iter_transactions(expenses, by_category_filter(category)))


def category_matrix(
    monthly_expenses: Sequence[Iterable[Expense]], categories: Iterable[str]
) -> dict[str, list[Decimal]]:
    """Per category, the list of monthly totals (one entry per input month).

    Categories with no spending in a month get 0 for that month; spending
    in categories not listed is left out.
    """
    per_month = [by_category(month) for month in monthly_expenses]
    return {cat: [m.get(cat, ZERO) for m in per_month] for cat in categories}


def top_categories(expenses: Iterable[Expense], k: int) -> Iterator[tuple[str, Decimal]]:
    totals_by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for e in expenses:
        totals_by_category[e.category or OTHER] += e.amount

    ordered = sorted(totals_by_category.items(), key=lambda item: item[1], reverse=True)

    for name, amount in ordered[: max(0, k)]:
        yield name, amount


def share_of_total(category_totals: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Each category's percentage of the summed totals (0 when nothing spent)."""
    overall = sum(category_totals.values(), ZERO)
    if overall == 0:
        return {cat: ZERO for cat in category_totals}
    return {cat: amount / overall * 100 for cat, amount in category_totals.items()}
