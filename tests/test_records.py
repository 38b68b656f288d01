import json
from datetime import date, datetime
from decimal import Decimal

import pytest

from cashtrack.domain import Bill, Expense, Income, Kind, Period, Transaction
from cashtrack.records import (
    from_record,
    load_seed,
    parse_amount,
    parse_date,
    to_fields,
    validate_fields,
)


def test_parse_amount_variants():
    assert parse_amount(12.3) == Decimal("12.3")
    assert parse_amount("1,234.56") == Decimal("1234.56")
    assert parse_amount(7) == Decimal(7)
    for bad in ("abc", None, True, "NaN", ""):
        with pytest.raises(ValueError):
            parse_amount(bad)


def test_parse_date_variants():
    assert parse_date("2026-03-01") == date(2026, 3, 1)
    assert parse_date("2026-03-01T10:00:00") == date(2026, 3, 1)
    assert parse_date(datetime(2026, 3, 1, 8)) == date(2026, 3, 1)
    with pytest.raises(ValueError):
        parse_date("2026-02-30")
    with pytest.raises(ValueError):
        parse_date(None)


def test_validate_builds_the_right_variant():
    income = validate_fields(Kind.INCOME, {"date": "2026-03-01", "amount": 5000, "source": " Salary "})
    assert income.is_right()
    assert isinstance(income.get(), Income)
    assert income.get().label == "Salary"

    bill = validate_fields(Kind.BILL, {"date": "2026-03-01", "amount": 10, "description": "Card"}).get()
    assert isinstance(bill, Bill)
    assert not hasattr(bill, "category")


def test_validate_collects_all_errors():
    result = validate_fields(Kind.INCOME, {"amount": "x", "tags": "oops"})
    assert result.is_left()
    assert {e["field"] for e in result.get_error()} == {"date", "amount", "source", "tags"}


def test_from_record_tolerates_missing_category():
    e = from_record(Kind.EXPENSE, {"id": "e1", "date": "2026-03-01", "amount": 3, "description": "x"})
    assert isinstance(e, Expense)
    assert e.category == ""
    assert e.id == "e1"


def test_from_record_rejects_garbage():
    with pytest.raises(ValueError):
        from_record(Kind.BILL, {"id": "b1", "date": "soon", "amount": 3, "description": "x"})


def test_to_fields_round_trips_through_validation():
    e = Expense(
        "e1", date(2026, 3, 5), Decimal("1200.00"), "Flat", "Rent",
        tags=("home",), recurring=True, created_at=datetime(2026, 3, 5, 9, 0),
    )
    record = {"id": "e1", **to_fields(e), "createdAt": "2026-03-05T09:00:00"}
    assert to_fields(e) == {
        "date": "2026-03-05",
        "amount": "1200.00",
        "description": "Flat",
        "category": "Rent",
        "notes": "",
        "tags": ["home"],
        "recurring": True,
    }
    assert from_record(Kind.EXPENSE, record) == e


def test_load_seed(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"income": [{"id": "i1"}], "bills": []}))
    seed = load_seed(str(path))
    assert seed[Kind.INCOME] == [{"id": "i1"}]
    assert seed[Kind.EXPENSE] == []


def test_period_navigation():
    assert Period(2026, 1).previous() == Period(2025, 12)
    assert Period(2025, 12).next() == Period(2026, 1)
    assert Period(2026, 3).shift(-15) == Period(2024, 12)
    assert Period(2026, 12).end == date(2027, 1, 1)
    assert Period(2026, 2).days == 28
    assert str(Period(2026, 3)) == "2026-03"
    assert Period(2026, 3).label == "Mar 2026"
    with pytest.raises(ValueError):
        Period(2026, 13)


def test_rejects_non_list_tags_and_non_text_notes():
    base = {"date": "2026-03-01", "amount": 10, "description": "Card"}
    for bad in ({"tags": 5}, {"tags": "a,b"}, {"tags": {"a": 1}}, {"tags": ["ok", 3]}):
        result = validate_fields(Kind.BILL, {**base, **bad})
        assert [e["field"] for e in result.get_error()] == ["tags"]

    result = validate_fields(Kind.BILL, {**base, "notes": 42})
    assert [e["field"] for e in result.get_error()] == ["notes"]

    result = validate_fields(Kind.EXPENSE, {**base, "category": 7}, require_category=False)
    assert [e["field"] for e in result.get_error()] == ["category"]


def test_malformed_record_raises_value_error():
    with pytest.raises(ValueError):
        from_record(Kind.BILL, {"id": "b1", "date": "2026-03-01", "amount": 3, "description": "x", "tags": 5})


def test_transaction_base_is_abstract():
    with pytest.raises(TypeError):
        Transaction("t1", date(2026, 3, 1), Decimal(1))
