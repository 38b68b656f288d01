import asyncio
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from cashtrack.aggregation import by_category, category_matrix, share_of_total, summarize, total
from cashtrack.async_reports import PeriodData, fetch_everything, fetch_period, fetch_window, fetch_year
from cashtrack.categories import CategoryRegistry
from cashtrack.domain import Kind, Period
from cashtrack.events import EventBus
from cashtrack.recurring import PropagationResult, propagate_recurring
from cashtrack.search import SearchResult, search
from cashtrack.store import TransactionStore
from cashtrack.trends import (
    MonthlySeries,
    Projection,
    TrendDelta,
    annual_projection,
    monthly_series,
    months_elapsed,
    order_by_registry,
    rolling_periods,
    trend_delta,
    waterfall,
)


Calculator = Callable[[Period, PeriodData, CategoryRegistry, Dict[str, Any]], Dict[str, Any]]


def calc_summary(period, data, registry, acc):
    return {"summary": summarize(data.income, data.expenses, data.bills)}


def calc_categories(period, data, registry, acc):
    totals = order_by_registry(by_category(data.expenses), registry.names())
    return {
        "categories": totals,
        "category_colors": {name: registry.color_for(name) for name in totals},
        "category_shares": share_of_total(totals),
    }


def calc_waterfall(period, data, registry, acc):
    summary = acc.get("summary") or summarize(data.income, data.expenses, data.bills)
    totals = acc.get("categories")
    if totals is None:
        totals = order_by_registry(by_category(data.expenses), registry.names())
    return {"waterfall": waterfall(summary.total_income, totals)}


DEFAULT_CALCULATORS: tuple[Calculator, ...] = (calc_summary, calc_categories, calc_waterfall)


class ReportService:
    """Facade running calculators over one period's data.

    Each calculator takes (period, data, registry, acc) and returns a partial
    result merged into acc, so later calculators can reuse earlier output.
    """

    def __init__(self, calculators: Sequence[Calculator] = DEFAULT_CALCULATORS):
        self.calculators = calculators

    def period_report(self, period: Period, data: PeriodData, registry: CategoryRegistry) -> Dict[str, Any]:
        report = {"period": str(period), "steps": [], "result": {}}
        acc: Dict[str, Any] = {}
        for calc in self.calculators:
            out = calc(period, data, registry, acc)
            report["steps"].append({"calculator": getattr(calc, "__name__", str(calc)), "output": out})
            if isinstance(out, dict):
                acc.update(out)
        report["result"] = acc
        return report


@dataclass(frozen=True)
class HistoryReport:
    periods: List[Period]
    series: MonthlySeries
    bills: List[Decimal]
    category_matrix: Dict[str, List[Decimal]]

    @property
    def labels(self) -> List[str]:
        return [p.label for p in self.periods]


@dataclass(frozen=True)
class AnnualReport:
    year: int
    series: MonthlySeries
    income_trend: TrendDelta
    expense_trend: TrendDelta
    projection: Projection
    months_elapsed: int


class DashboardService:
    """Request/response entry points used by the dashboard.

    Holds collaborators only; the selected period and today's date are
    passed in on every call.
    """

    def __init__(
        self,
        store: TransactionStore,
        registry: CategoryRegistry,
        bus: Optional[EventBus] = None,
        reports: Optional[ReportService] = None,
    ):
        self.store = store
        self.registry = registry
        self.bus = bus
        self.reports = reports or ReportService()

    async def period(self, period: Period) -> tuple[PeriodData, Dict[str, Any]]:
        data = await fetch_period(self.store, period)
        return data, self.reports.period_report(period, data, self.registry)["result"]

    async def history(self, end: Period, months: int = 6) -> HistoryReport:
        """Per-month totals for the months ending at end, oldest first."""
        periods = rolling_periods(end, months)
        income, expenses, bills = await asyncio.gather(
            fetch_window(self.store, Kind.INCOME, periods),
            fetch_window(self.store, Kind.EXPENSE, periods),
            fetch_window(self.store, Kind.BILL, periods),
        )
        inc = [total(month) for month in income]
        exp = [total(month) for month in expenses]
        series = MonthlySeries(inc, exp, [i - e for i, e in zip(inc, exp)])
        return HistoryReport(
            periods=periods,
            series=series,
            bills=[total(month) for month in bills],
            category_matrix=category_matrix(expenses, self.registry.names()),
        )

    async def annual(self, year: int, today: date) -> AnnualReport:
        income_months, expense_months = await asyncio.gather(
            fetch_year(self.store, Kind.INCOME, year),
            fetch_year(self.store, Kind.EXPENSE, year),
        )
        income = [t for month in income_months for t in month]
        expenses = [t for month in expense_months for t in month]

        series = monthly_series(income, expenses, year)
        elapsed = months_elapsed(year, today)
        reference = max(elapsed, 1) - 1
        return AnnualReport(
            year=year,
            series=series,
            income_trend=trend_delta(series.income, reference),
            expense_trend=trend_delta(series.expenses, reference),
            projection=annual_projection(income, expenses, elapsed),
            months_elapsed=elapsed,
        )

    async def search(self, query: str) -> SearchResult:
        data = await fetch_everything(self.store)
        return search(query, data.income, data.expenses, data.bills)

    async def propagate(self, kind: Kind, target: Period) -> PropagationResult:
        return await propagate_recurring(self.store, kind, target, self.bus)
