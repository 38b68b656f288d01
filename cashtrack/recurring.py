"""Copy last month's recurring entries into a target month.

Series identity is the label text (income source or description): a
candidate is skipped when the target month already holds a *recurring*
entry with the same label. A non-recurring entry with that label does not
block it.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from cashtrack.domain import Kind, Period, Transaction
from cashtrack.events import TRANSACTIONS_PROPAGATED, EventBus
from cashtrack.exceptions import ValidationFailure
from cashtrack.filters import iter_transactions, recurring_only
from cashtrack.records import to_fields
from cashtrack.store import StoreResult, TransactionStore

logger = logging.getLogger(__name__)


class PropagationStatus(str, Enum):
    NO_SOURCES = "no_sources"
    ALREADY_PRESENT = "already_present"
    CREATED = "created"
    FAILED = "failed"


@dataclass(frozen=True)
class PropagationPlan:
    sources: tuple[Transaction, ...]
    to_create: tuple[Transaction, ...]
    skipped: tuple[Transaction, ...]


@dataclass(frozen=True)
class PropagationResult:
    status: PropagationStatus
    created: int = 0
    skipped: int = 0
    failed: int = 0


def clamp_day(period: Period, day: int) -> date:
    """Same day-of-month in period, or its last day when shorter."""
    return date(period.year, period.month, min(day, period.days))


def plan_propagation(
    target: Period,
    sources: Iterable[Transaction],
    existing: Iterable[Transaction],
) -> PropagationPlan:
    recurring_sources = tuple(iter_transactions(sources, recurring_only))
    taken = {t.label for t in iter_transactions(existing, recurring_only)}

    to_create, skipped = [], []
    for src in recurring_sources:
        if src.label in taken:
            skipped.append(src)
            continue
        to_create.append(replace(
            src,
            id="",
            date=clamp_day(target, src.date.day),
            recurring=True,
            created_at=None,
            updated_at=None,
        ))
    return PropagationPlan(recurring_sources, tuple(to_create), tuple(skipped))


async def propagate_recurring(
    store: TransactionStore,
    kind: Kind,
    target: Period,
    bus: Optional[EventBus] = None,
) -> PropagationResult:
    source_period = target.previous()
    sources, existing = await asyncio.gather(
        store.fetch_by_period(kind, source_period.year, source_period.month),
        store.fetch_by_period(kind, target.year, target.month),
    )
    if not sources.success or not existing.success:
        # without the target month we cannot dedupe, so create nothing
        logger.warning("Cannot propagate %s into %s: fetch failed", kind.collection, target)
        return PropagationResult(PropagationStatus.FAILED)

    plan = plan_propagation(target, sources.data, existing.data)
    if not plan.sources:
        return PropagationResult(PropagationStatus.NO_SOURCES)
    if not plan.to_create:
        return PropagationResult(PropagationStatus.ALREADY_PRESENT, skipped=len(plan.skipped))

    created = failed = 0
    for t in plan.to_create:
        try:
            result = await store.create(kind, to_fields(t))
        except ValidationFailure as e:
            result = StoreResult(False, error=str(e))
        if result.success:
            created += 1
        else:
            failed += 1
            logger.warning("Could not copy recurring %s %r: %s", kind.value, t.label, result.error)

    logger.info(
        "Propagated %d recurring %s from %s into %s (%d already present)",
        created, kind.collection, source_period, target, len(plan.skipped),
    )
    if bus is not None and created:
        bus.publish(TRANSACTIONS_PROPAGATED, {"kind": kind.value, "period": str(target), "created": created})
    status = PropagationStatus.CREATED if created else PropagationStatus.FAILED
    return PropagationResult(status, created, len(plan.skipped), failed)
