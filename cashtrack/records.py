"""Conversion between store records (plain mappings) and domain transactions.

A record uses the field names of the document store: ``date`` as a
``YYYY-MM-DD`` string, ``source``/``description``, ``category`` for
expenses, ``createdAt``/``updatedAt`` timestamps.
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from cashtrack.domain import VARIANTS, Kind, Transaction
from cashtrack.functional import Either, Left, Right


def parse_amount(value: Any) -> Decimal:
    """Parse an amount into a Decimal.

    Floats go through their shortest repr so 12.3 stays 12.3 rather than
    the binary expansion. Raises ValueError for anything unparseable.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not an amount: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"not an amount: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"not an amount: {value!r}")
    return amount


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        # tolerate full timestamps, only the calendar date matters
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"not a date: {value!r}")


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def validate_fields(
    kind: Kind,
    fields: Mapping[str, Any],
    categories: Optional[Iterable[str]] = None,
    record_id: str = "",
    require_category: bool = True,
) -> Either[list[dict], Transaction]:
    """Check the mutable fields of an entry and build the transaction.

    Returns Left with every field error found, or Right with the parsed
    transaction. When ``categories`` is given, an expense category must be
    one of them.
    """
    errors: list[dict] = []

    parsed_date = None
    try:
        parsed_date = parse_date(fields.get("date"))
    except ValueError:
        errors.append(_error("date", "a valid date is required"))

    amount = None
    try:
        amount = parse_amount(fields.get("amount"))
        if amount < 0:
            errors.append(_error("amount", "amount cannot be negative"))
    except ValueError:
        errors.append(_error("amount", "a numeric amount is required"))

    label_field = kind.label_field
    label = fields.get(label_field)
    if not isinstance(label, str) or not label.strip():
        errors.append(_error(label_field, f"{label_field} is required"))

    category = fields.get("category") or ""
    if kind is Kind.EXPENSE:
        if not isinstance(category, str):
            errors.append(_error("category", "category must be text"))
        elif not category:
            if require_category:
                errors.append(_error("category", "category is required"))
        elif categories is not None and category not in set(categories):
            errors.append(_error("category", f"unknown category {category!r}"))

    tags = fields.get("tags") or ()
    if not isinstance(tags, (list, tuple)) or not all(isinstance(t, str) for t in tags):
        errors.append(_error("tags", "tags must be a list of strings"))

    notes = fields.get("notes") or ""
    if not isinstance(notes, str):
        errors.append(_error("notes", "notes must be text"))

    if errors:
        return Left(errors)

    extra = {"category": category} if kind is Kind.EXPENSE else {}
    return Right(VARIANTS[kind](
        record_id,
        parsed_date,
        amount,
        label.strip(),
        notes=notes,
        tags=tuple(tags),
        recurring=bool(fields.get("recurring", False)),
        created_at=_parse_timestamp(fields.get("createdAt")),
        updated_at=_parse_timestamp(fields.get("updatedAt")),
        **extra,
    ))


def from_record(kind: Kind, record: Mapping[str, Any]) -> Transaction:
    """Build a transaction from a stored record.

    Stored records are trusted to carry a category that existed when they
    were written, so no registry check happens here.
    """
    result = validate_fields(
        kind, record, record_id=str(record.get("id", "")), require_category=False
    )
    if result.is_left():
        raise ValueError(f"malformed {kind.value} record {record.get('id')!r}: {result.get_error()}")
    return result.get()


def to_fields(t: Transaction) -> dict[str, Any]:
    """Mutable fields of a transaction, as accepted by create/update."""
    fields: dict[str, Any] = {
        "date": t.date.isoformat(),
        "amount": str(t.amount),
        t.kind.label_field: t.label,
        "notes": t.notes,
        "tags": list(t.tags),
        "recurring": t.recurring,
    }
    if t.kind is Kind.EXPENSE:
        fields["category"] = t.category
    return fields


def load_seed(path: str) -> dict[Kind, list[dict]]:
    """Read a JSON document holding the three collections.

    Missing collections load as empty lists.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {kind: list(data.get(kind.collection, [])) for kind in Kind}
