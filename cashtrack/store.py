"""Transaction store adapter.

``TransactionStore`` owns the contract the engine relies on: every public
method returns a StoreResult instead of raising on adapter trouble, period
queries fall back to a client-side filter over the whole collection, and
every operation is gated on the allow-listed identity. Concrete stores only
implement the underscore primitives and raise AdapterFailure when the
backend misbehaves.
"""

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional
from uuid import uuid4

from cashtrack.auth import is_allowed
from cashtrack.domain import Identity, Kind, Period, Transaction
from cashtrack.exceptions import AdapterFailure, ValidationFailure
from cashtrack.filters import in_period, iter_transactions
from cashtrack.records import from_record, load_seed, parse_date, to_fields, validate_fields

logger = logging.getLogger(__name__)

UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class StoreResult:
    success: bool
    data: tuple[Transaction, ...] = ()
    id: Optional[str] = None
    error: Optional[str] = None


def _newest_first(trans: Iterable[Transaction]) -> tuple[Transaction, ...]:
    return tuple(sorted(trans, key=lambda t: t.date, reverse=True))


class TransactionStore(ABC):

    def __init__(self, identity: Optional[Identity] = None, allowed: Iterable[str] = ()):
        self._identity = identity
        self._allowed = tuple(allowed)

    def current_identity(self) -> Optional[Identity]:
        return self._identity

    def _authorized(self, operation: str) -> bool:
        if is_allowed(self._identity, self._allowed):
            return True
        who = self._identity.email if self._identity else "anonymous"
        logger.warning("Rejected %s for %s", operation, who)
        return False

    @abstractmethod
    async def _query_range(self, kind: Kind, start: date, end: date) -> list[dict]:
        """Records with start <= date < end."""

    @abstractmethod
    async def _query_all(self, kind: Kind) -> list[dict]:
        pass

    @abstractmethod
    async def _insert(self, kind: Kind, record: dict) -> str:
        pass

    @abstractmethod
    async def _patch(self, kind: Kind, record_id: str, fields: dict) -> bool:
        """Merge fields into an existing record; False when it does not exist."""

    @abstractmethod
    async def _remove(self, kind: Kind, record_id: str) -> bool:
        pass

    def _to_transactions(self, kind: Kind, records: Iterable[Mapping[str, Any]]) -> tuple[Transaction, ...]:
        out = []
        for r in records:
            try:
                out.append(from_record(kind, r))
            except ValueError as e:
                logger.warning("Skipping record: %s", e)
        return _newest_first(out)

    async def fetch_all(self, kind: Kind) -> StoreResult:
        if not self._authorized("fetch_all"):
            return StoreResult(False, error=UNAUTHORIZED)
        try:
            records = await self._query_all(kind)
        except AdapterFailure as e:
            logger.warning("Fetching %s failed: %s", kind.collection, e)
            return StoreResult(False, error=str(e))
        return StoreResult(True, self._to_transactions(kind, records))

    async def fetch_by_period(self, kind: Kind, year: int, month: int) -> StoreResult:
        if not self._authorized("fetch_by_period"):
            return StoreResult(False, error=UNAUTHORIZED)
        period = Period(year, month)
        try:
            records = await self._query_range(kind, period.start, period.end)
        except AdapterFailure as e:
            logger.warning(
                "Range query for %s %s failed (%s), filtering full collection instead",
                kind.collection, period, e,
            )
            everything = await self.fetch_all(kind)
            if not everything.success:
                return StoreResult(False, error=everything.error)
            return StoreResult(True, tuple(iter_transactions(everything.data, in_period(period))))
        return StoreResult(True, self._to_transactions(kind, records))

    async def create(
        self,
        kind: Kind,
        fields: Mapping[str, Any],
        categories: Optional[Iterable[str]] = None,
    ) -> StoreResult:
        if not self._authorized("create"):
            return StoreResult(False, error=UNAUTHORIZED)
        record = self._validated(kind, fields, categories)
        record["createdAt"] = datetime.now().isoformat()
        try:
            new_id = await self._insert(kind, record)
        except AdapterFailure as e:
            logger.warning("Adding to %s failed: %s", kind.collection, e)
            return StoreResult(False, error=str(e))
        logger.info("Added %s %s", kind.value, new_id)
        return StoreResult(True, id=new_id)

    async def update(
        self,
        kind: Kind,
        record_id: str,
        fields: Mapping[str, Any],
        categories: Optional[Iterable[str]] = None,
    ) -> StoreResult:
        if not self._authorized("update"):
            return StoreResult(False, error=UNAUTHORIZED)
        record = self._validated(kind, fields, categories)
        record["updatedAt"] = datetime.now().isoformat()
        try:
            found = await self._patch(kind, record_id, record)
        except AdapterFailure as e:
            logger.warning("Updating %s/%s failed: %s", kind.collection, record_id, e)
            return StoreResult(False, error=str(e))
        if not found:
            return StoreResult(False, error=f"{kind.value} {record_id} not found")
        return StoreResult(True, id=record_id)

    async def delete(self, kind: Kind, record_id: str) -> StoreResult:
        if not self._authorized("delete"):
            return StoreResult(False, error=UNAUTHORIZED)
        try:
            found = await self._remove(kind, record_id)
        except AdapterFailure as e:
            logger.warning("Deleting %s/%s failed: %s", kind.collection, record_id, e)
            return StoreResult(False, error=str(e))
        if not found:
            return StoreResult(False, error=f"{kind.value} {record_id} not found")
        logger.info("Deleted %s %s", kind.value, record_id)
        return StoreResult(True, id=record_id)

    def _validated(self, kind: Kind, fields: Mapping[str, Any], categories) -> dict:
        result = validate_fields(kind, fields, categories)
        if result.is_left():
            raise ValidationFailure(result.get_error())
        return to_fields(result.get())


class InMemoryStore(TransactionStore):
    """Store keeping each collection as a dict of records keyed by id."""

    def __init__(
        self,
        seed: Optional[Mapping[Kind, Iterable[Mapping[str, Any]]]] = None,
        identity: Optional[Identity] = None,
        allowed: Iterable[str] = (),
    ):
        super().__init__(identity, allowed)
        self._collections: dict[Kind, dict[str, dict]] = {kind: {} for kind in Kind}
        for kind, records in (seed or {}).items():
            for r in records:
                record = dict(r)
                record_id = str(record.pop("id", "") or uuid4().hex)
                self._collections[kind][record_id] = record

    def _with_id(self, record_id: str, record: dict) -> dict:
        return {"id": record_id, **record}

    async def _query_range(self, kind: Kind, start: date, end: date) -> list[dict]:
        out = []
        for record_id, r in self._collections[kind].items():
            try:
                d = parse_date(r.get("date"))
            except ValueError:
                continue
            if start <= d < end:
                out.append(self._with_id(record_id, r))
        return out

    async def _query_all(self, kind: Kind) -> list[dict]:
        return [self._with_id(i, r) for i, r in self._collections[kind].items()]

    async def _insert(self, kind: Kind, record: dict) -> str:
        record_id = uuid4().hex
        self._collections[kind][record_id] = dict(record)
        return record_id

    async def _patch(self, kind: Kind, record_id: str, fields: dict) -> bool:
        existing = self._collections[kind].get(record_id)
        if existing is None:
            return False
        existing.update(fields)
        return True

    async def _remove(self, kind: Kind, record_id: str) -> bool:
        return self._collections[kind].pop(record_id, None) is not None

    def snapshot(self) -> dict[str, list[dict]]:
        """All collections as plain records, keyed by collection name."""
        return {
            kind.collection: [self._with_id(i, r) for i, r in self._collections[kind].items()]
            for kind in Kind
        }


class JsonFileStore(InMemoryStore):
    """In-memory store mirrored to a JSON document after every write.

    The document maps collection names (income, expenses, bills) to lists
    of records. A write that cannot be persisted is rolled back.
    """

    def __init__(self, path: str, identity: Optional[Identity] = None, allowed: Iterable[str] = ()):
        self.path = Path(path)
        seed = load_seed(str(self.path)) if self.path.exists() else None
        super().__init__(seed, identity, allowed)

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self.snapshot(), f, indent=2)
        os.replace(tmp, self.path)

    async def _persisted(self, mutate):
        before = copy.deepcopy(self._collections)
        result = await mutate()
        try:
            self._write()
        except OSError as e:
            self._collections = before
            raise AdapterFailure(f"could not write {self.path}: {e}") from e
        return result

    async def _insert(self, kind: Kind, record: dict) -> str:
        return await self._persisted(lambda: super(JsonFileStore, self)._insert(kind, record))

    async def _patch(self, kind: Kind, record_id: str, fields: dict) -> bool:
        return await self._persisted(lambda: super(JsonFileStore, self)._patch(kind, record_id, fields))

    async def _remove(self, kind: Kind, record_id: str) -> bool:
        return await self._persisted(lambda: super(JsonFileStore, self)._remove(kind, record_id))
