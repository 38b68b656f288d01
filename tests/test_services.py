from datetime import date
from decimal import Decimal

import pytest

from cashtrack.categories import CategoryRegistry
from cashtrack.domain import Identity, Kind, Period
from cashtrack.recurring import PropagationStatus
from cashtrack.search import SearchStatus
from cashtrack.services import DashboardService, ReportService
from cashtrack.store import InMemoryStore
from cashtrack.trends import UP

OWNER = Identity(uid="u1", email="owner@example.com")


def make_service(seed, customs=None):
    store = InMemoryStore(seed, identity=OWNER, allowed=[OWNER.email])
    return DashboardService(store, CategoryRegistry(customs))


def march_seed():
    return {
        Kind.INCOME: [{"id": "i1", "date": "2026-03-01", "amount": 5000, "source": "Salary"}],
        Kind.EXPENSE: [
            {"id": "e1", "date": "2026-03-10", "amount": 300, "description": "Market", "category": "Groceries"},
            {"id": "e2", "date": "2026-03-05", "amount": 1200, "description": "Flat", "category": "Rent"},
            {"id": "e3", "date": "2026-03-07", "amount": 50, "description": "Old", "category": "Hobby"},
        ],
        Kind.BILL: [{"id": "b1", "date": "2026-03-20", "amount": 800, "description": "Chase"}],
    }


@pytest.mark.asyncio
async def test_period_report():
    service = make_service(march_seed())
    data, result = await service.period(Period(2026, 3))

    summary = result["summary"]
    assert summary.total_income == 5000
    assert summary.total_expenses == 1550
    assert summary.net_savings == 3450
    assert summary.available_savings == 4200

    # registry order, orphaned Hobby last
    assert list(result["categories"]) == ["Rent", "Groceries", "Hobby"]
    assert result["category_colors"]["Hobby"] == "#6b7280"

    bars = result["waterfall"]
    assert [b.label for b in bars] == ["Income", "Rent", "Groceries", "Hobby", "Net"]
    assert bars[-1].running_total == summary.net_savings
    assert len(data.expenses) == 3


def test_report_service_runs_calculators_in_order():
    def first(period, data, registry, acc):
        return {"x": 1}

    def second(period, data, registry, acc):
        return {"y": acc["x"] + 1}

    svc = ReportService(calculators=[first, second])
    report = svc.period_report(Period(2026, 3), None, CategoryRegistry())
    assert report["period"] == "2026-03"
    assert [s["calculator"] for s in report["steps"]] == ["first", "second"]
    assert report["result"] == {"x": 1, "y": 2}


@pytest.mark.asyncio
async def test_history_crosses_year_boundary():
    seed = {
        Kind.INCOME: [
            {"id": "i1", "date": "2025-12-01", "amount": 1000, "source": "Salary"},
            {"id": "i2", "date": "2026-01-01", "amount": 2000, "source": "Salary"},
        ],
        Kind.EXPENSE: [
            {"id": "e1", "date": "2025-12-03", "amount": 100, "description": "x", "category": "Rent"},
        ],
    }
    history = await make_service(seed).history(Period(2026, 1), months=2)
    assert history.labels == ["Dec 2025", "Jan 2026"]
    assert history.series.income == [Decimal(1000), Decimal(2000)]
    assert history.series.savings == [Decimal(900), Decimal(2000)]
    assert history.category_matrix["Rent"] == [Decimal(100), Decimal(0)]
    assert history.bills == [Decimal(0), Decimal(0)]


@pytest.mark.asyncio
async def test_annual_report():
    seed = {
        Kind.INCOME: [
            {"id": f"i{m}", "date": f"2026-{m:02d}-01", "amount": 1000 if m <= 3 else 2000, "source": "Salary"}
            for m in range(1, 7)
        ],
        Kind.EXPENSE: [
            {"id": "e1", "date": "2026-02-01", "amount": 600, "description": "x", "category": "Rent"},
        ],
    }
    report = await make_service(seed).annual(2026, date(2026, 6, 20))
    assert report.months_elapsed == 6
    assert report.income_trend.percent == 100
    assert report.income_trend.direction == UP
    assert report.expense_trend.percent == -100
    assert report.projection.income == 18000
    assert report.projection.expenses == 1200


@pytest.mark.asyncio
async def test_search_and_propagate_through_service():
    service = make_service(march_seed())
    assert (await service.search("g")).status == SearchStatus.TOO_SHORT
    result = await service.search("chase")
    assert [h.kind for h in result.hits] == [Kind.BILL]

    outcome = await service.propagate(Kind.BILL, Period(2026, 4))
    assert outcome.status == PropagationStatus.NO_SOURCES


@pytest.mark.asyncio
async def test_search_ignores_malformed_records():
    seed = {
        Kind.BILL: [
            {"id": "b1", "date": "2026-03-01", "amount": 10, "description": "zz card", "notes": 42},
            {"id": "b2", "date": "2026-03-02", "amount": 10, "description": "zz loan", "tags": 5},
            {"id": "b3", "date": "2026-03-03", "amount": 10, "description": "zz visa"},
        ],
    }
    result = await make_service(seed).search("zz")
    assert result.status == SearchStatus.MATCHES
    assert [h.transaction.id for h in result.hits] == ["b3"]
