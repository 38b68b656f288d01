import asyncio

import pytest

from cashtrack.async_reports import fetch_everything, fetch_period, fetch_window, fetch_year
from cashtrack.domain import Identity, Kind, Period
from cashtrack.exceptions import AdapterFailure
from cashtrack.store import InMemoryStore

OWNER = Identity(uid="u1", email="owner@example.com")


def yearly_income_seed():
    return {Kind.INCOME: [
        {"id": f"i{m}", "date": f"2026-{m:02d}-01", "amount": m * 100, "source": "Salary"}
        for m in range(1, 13)
    ]}


class FlakyStore(InMemoryStore):
    """Fails every fetch for the given months, with a delay on the others."""

    def __init__(self, seed, bad_months, raise_outright=False):
        super().__init__(seed, identity=OWNER, allowed=[OWNER.email])
        self.bad_months = set(bad_months)
        self.raise_outright = raise_outright

    async def fetch_by_period(self, kind, year, month):
        if month in self.bad_months and self.raise_outright:
            raise RuntimeError("connection reset")
        # finish out of order
        await asyncio.sleep(0.001 * (12 - month))
        return await super().fetch_by_period(kind, year, month)

    async def _query_range(self, kind, start, end):
        if start.month in self.bad_months:
            raise AdapterFailure("timeout")
        return await super()._query_range(kind, start, end)

    async def _query_all(self, kind):
        raise AdapterFailure("timeout")


@pytest.mark.asyncio
async def test_fetch_period_all_kinds():
    store = InMemoryStore({
        Kind.INCOME: [{"id": "i1", "date": "2026-03-01", "amount": 5000, "source": "Salary"}],
        Kind.EXPENSE: [{"id": "e1", "date": "2026-03-05", "amount": 1200, "description": "Rent", "category": "Rent"}],
        Kind.BILL: [{"id": "b1", "date": "2026-04-01", "amount": 10, "description": "Card"}],
    }, identity=OWNER, allowed=[OWNER.email])
    data = await fetch_period(store, Period(2026, 3))
    assert [t.id for t in data.income] == ["i1"]
    assert [t.id for t in data.expenses] == ["e1"]
    assert data.bills == ()


@pytest.mark.asyncio
async def test_fetch_year_keeps_month_order():
    store = FlakyStore(yearly_income_seed(), bad_months=[])
    months = await fetch_year(store, Kind.INCOME, 2026)
    assert len(months) == 12
    assert [m[0].amount for m in months] == [m * 100 for m in range(1, 13)]


@pytest.mark.asyncio
async def test_failed_month_is_empty_others_survive():
    store = FlakyStore(yearly_income_seed(), bad_months=[4])
    months = await fetch_year(store, Kind.INCOME, 2026)
    assert months[3] == ()
    assert sum(len(m) for m in months) == 11


@pytest.mark.asyncio
async def test_raising_adapter_is_tolerated():
    store = FlakyStore(yearly_income_seed(), bad_months=[1, 2], raise_outright=True)
    months = await fetch_window(store, Kind.INCOME, [Period(2026, m) for m in (1, 2, 3)])
    assert months[0] == () and months[1] == ()
    assert months[2][0].id == "i3"


@pytest.mark.asyncio
async def test_fetch_everything_spans_periods():
    store = InMemoryStore(yearly_income_seed(), identity=OWNER, allowed=[OWNER.email])
    data = await fetch_everything(store)
    assert len(data.income) == 12
    assert data.income[0].id == "i12"
