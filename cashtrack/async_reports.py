import asyncio
import logging
from typing import Iterable, List, NamedTuple, Sequence, Union

from cashtrack.domain import Expense, Kind, Period, Transaction
from cashtrack.store import StoreResult, TransactionStore

logger = logging.getLogger(__name__)


class PeriodData(NamedTuple):
    income: tuple[Transaction, ...]
    expenses: tuple[Expense, ...]
    bills: tuple[Transaction, ...]


def _settled(outcome: Union[StoreResult, BaseException], what: str) -> tuple[Transaction, ...]:
    # a failed slice counts as empty, the others still count
    if isinstance(outcome, BaseException):
        logger.warning("Fetching %s raised %r, treating as empty", what, outcome)
        return ()
    if not outcome.success:
        logger.warning("Fetching %s failed (%s), treating as empty", what, outcome.error)
        return ()
    return outcome.data


async def _gather(store_calls, labels: Sequence[str]) -> List[tuple[Transaction, ...]]:
    results = await asyncio.gather(*store_calls, return_exceptions=True)
    return [_settled(r, label) for r, label in zip(results, labels)]


async def fetch_period(store: TransactionStore, period: Period) -> PeriodData:
    """Income, expenses and bills of one period, fetched concurrently."""
    kinds = (Kind.INCOME, Kind.EXPENSE, Kind.BILL)
    income, expenses, bills = await _gather(
        [store.fetch_by_period(k, period.year, period.month) for k in kinds],
        [f"{k.collection} {period}" for k in kinds],
    )
    return PeriodData(income, expenses, bills)


async def fetch_window(
    store: TransactionStore, kind: Kind, periods: Iterable[Period]
) -> List[tuple[Transaction, ...]]:
    """One result per period, in the order given."""
    periods = list(periods)
    return await _gather(
        [store.fetch_by_period(kind, p.year, p.month) for p in periods],
        [f"{kind.collection} {p}" for p in periods],
    )


async def fetch_year(store: TransactionStore, kind: Kind, year: int) -> List[tuple[Transaction, ...]]:
    return await fetch_window(store, kind, [Period(year, m) for m in range(1, 13)])


async def fetch_everything(store: TransactionStore) -> PeriodData:
    """Whole collections of every kind (search runs over all periods)."""
    kinds = (Kind.INCOME, Kind.EXPENSE, Kind.BILL)
    income, expenses, bills = await _gather(
        [store.fetch_all(k) for k in kinds],
        [k.collection for k in kinds],
    )
    return PeriodData(income, expenses, bills)
