from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from cashtrack.domain import Expense, Kind, Transaction
from cashtrack.filters import iter_transactions
from cashtrack.functional import pipe

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 50


class SearchStatus(str, Enum):
    TOO_SHORT = "too_short"
    NO_MATCHES = "no_matches"
    MATCHES = "matches"


@dataclass(frozen=True)
class SearchHit:
    kind: Kind
    transaction: Transaction


@dataclass(frozen=True)
class SearchResult:
    status: SearchStatus
    query: str
    hits: tuple[SearchHit, ...] = ()
    total_matches: int = 0

    @property
    def truncated(self) -> bool:
        return self.total_matches > len(self.hits)


def normalize_query(query: str) -> str:
    return pipe(query or "", str.strip, str.lower)


def searchable_text(t: Transaction) -> Iterator[str]:
    yield t.label
    if isinstance(t, Expense):
        yield t.category
    yield t.notes
    yield from t.tags


def matches(needle: str):
    def _filter(t: Transaction) -> bool:
        return any(needle in (text or "").lower() for text in searchable_text(t))

    return _filter


def search(
    query: str,
    income: Iterable[Transaction],
    expenses: Iterable[Transaction],
    bills: Iterable[Transaction],
    limit: int = MAX_RESULTS,
) -> SearchResult:
    """Substring search over every kind, newest first.

    Queries shorter than 2 characters (after trimming) are reported as
    TOO_SHORT, which callers must show differently from NO_MATCHES. The
    limit is applied after sorting.
    """
    needle = normalize_query(query)
    if len(needle) < MIN_QUERY_LENGTH:
        return SearchResult(SearchStatus.TOO_SHORT, needle)

    pred = matches(needle)
    found = [
        SearchHit(t.kind, t)
        for group in (income, expenses, bills)
        for t in iter_transactions(group, pred)
    ]
    if not found:
        return SearchResult(SearchStatus.NO_MATCHES, needle)

    # list.sort is stable with reverse=True, equal dates keep input order
    found.sort(key=lambda hit: hit.transaction.date, reverse=True)
    return SearchResult(SearchStatus.MATCHES, needle, tuple(found[:limit]), len(found))
