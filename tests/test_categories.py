from datetime import date
from decimal import Decimal

import pytest

from cashtrack.aggregation import by_category
from cashtrack.categories import BUILTIN_CATEGORIES, FALLBACK_COLOR, CategoryRegistry, merge
from cashtrack.domain import Category, Expense
from cashtrack.events import CATEGORY_ADDED, CATEGORY_REMOVED, EventBus
from cashtrack.exceptions import (
    CategoryNotFound,
    DuplicateCategory,
    ProtectedCategory,
    RegistryConflict,
    ValidationFailure,
)


def test_merge_keeps_builtin_order_then_customs():
    builtins = (Category("A", "#1", True), Category("B", "#2", True))
    merged = merge(builtins, {"Z": "#9", "B": "#override", "Y": "#8"})
    assert [c.name for c in merged] == ["A", "B", "Z", "Y"]
    assert merged[1].color == "#override"
    assert merged[1].builtin


def test_builtins_present_by_default():
    registry = CategoryRegistry()
    assert registry.names() == [c.name for c in BUILTIN_CATEGORIES]
    assert registry.color_for("Rent") == "#ef4444"


def test_add_custom_category():
    registry = CategoryRegistry()
    registry.add("Pets", "#123456")
    assert registry.names()[-1] == "Pets"
    assert registry.color_for("Pets") == "#123456"


def test_add_duplicate_fails_and_leaves_state():
    registry = CategoryRegistry({"Pets": "#111111"})
    with pytest.raises(DuplicateCategory):
        registry.add("Pets", "#222222")
    with pytest.raises(DuplicateCategory):
        registry.add("Rent", "#222222")
    assert registry.color_for("Pets") == "#111111"
    assert registry.color_for("Rent") == "#ef4444"


def test_names_are_case_sensitive():
    registry = CategoryRegistry()
    registry.add("rent", "#000000")
    assert "rent" in registry.names()
    assert "Rent" in registry.names()


def test_blank_name_rejected():
    with pytest.raises(ValidationFailure):
        CategoryRegistry().add("   ", "#000000")


def test_remove_builtin_is_protected():
    registry = CategoryRegistry()
    with pytest.raises(ProtectedCategory) as exc:
        registry.remove("Groceries")
    assert isinstance(exc.value, RegistryConflict)
    assert "Groceries" in registry.names()


def test_remove_unknown_custom():
    with pytest.raises(CategoryNotFound):
        CategoryRegistry().remove("Nope")


def test_removed_category_becomes_orphan_with_fallback_color():
    registry = CategoryRegistry({"Pets": "#123456"})
    expenses = [Expense("e1", date(2026, 3, 1), Decimal(40), "Vet", "Pets")]

    registry.remove("Pets")

    assert expenses[0].category == "Pets"
    assert registry.color_for("Pets") == FALLBACK_COLOR
    assert by_category(expenses) == {"Pets": Decimal(40)}
    assert registry.get("Pets").is_none()


def test_mutations_publish_events_with_custom_set():
    bus = EventBus()
    seen = []
    bus.subscribe(CATEGORY_ADDED, lambda e, p: seen.append((e.name, p["customs"])) or {})
    bus.subscribe(CATEGORY_REMOVED, lambda e, p: seen.append((e.name, p["customs"])) or {})

    registry = CategoryRegistry(bus=bus)
    registry.add("Pets", "#123456")
    registry.remove("Pets")

    assert seen == [(CATEGORY_ADDED, {"Pets": "#123456"}), (CATEGORY_REMOVED, {})]


def test_failed_mutation_publishes_nothing():
    bus = EventBus()
    seen = []
    bus.subscribe(CATEGORY_ADDED, lambda e, p: seen.append(p) or {})
    registry = CategoryRegistry(bus=bus)
    with pytest.raises(DuplicateCategory):
        registry.add("Rent", "#000000")
    assert seen == []


def test_choices_keep_a_removed_category_selectable():
    registry = CategoryRegistry({"Pets": "#123456"})
    assert registry.choices("Pets") == registry.names()
    assert registry.choices() == registry.names()

    registry.remove("Pets")
    choices = registry.choices("Pets")
    assert choices[:-1] == registry.names()
    assert choices[-1] == "Pets"
