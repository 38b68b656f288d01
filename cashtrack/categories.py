"""Category name -> color registry.

Built-in categories are fixed; custom ones are added and removed by the user
and persisted client side (see preferences.py). Custom entries override
built-ins with the same name. Expenses may keep referring to a category
after it is removed; such names resolve to FALLBACK_COLOR.
"""

import logging
from typing import Iterable, Mapping, Optional

from cashtrack.domain import Category
from cashtrack.events import CATEGORY_ADDED, CATEGORY_REMOVED, EventBus
from cashtrack.exceptions import (
    CategoryNotFound,
    DuplicateCategory,
    ProtectedCategory,
    ValidationFailure,
)
from cashtrack.functional import Maybe, safe_category

logger = logging.getLogger(__name__)

FALLBACK_COLOR = "#6b7280"

BUILTIN_CATEGORIES: tuple[Category, ...] = (
    Category("Rent", "#ef4444", builtin=True),
    Category("Utilities", "#f59e0b", builtin=True),
    Category("Groceries", "#10b981", builtin=True),
    Category("Transportation", "#3b82f6", builtin=True),
    Category("Investment", "#8b5cf6", builtin=True),
    Category("Eating Out", "#ec4899", builtin=True),
    Category("Donations", "#6366f1", builtin=True),
)


def merge(builtins: Iterable[Category], customs: Mapping[str, str]) -> tuple[Category, ...]:
    """Overlay custom colors on the built-ins.

    Built-in order comes first (a custom entry of the same name takes the
    built-in's slot and stays protected), then custom-only names in
    insertion order.
    """
    merged: dict[str, Category] = {}
    for cat in builtins:
        color = customs.get(cat.name, cat.color)
        merged[cat.name] = Category(cat.name, color, builtin=True)
    for name, color in customs.items():
        if name not in merged:
            merged[name] = Category(name, color)
    return tuple(merged.values())


class CategoryRegistry:

    def __init__(
        self,
        customs: Optional[Mapping[str, str]] = None,
        bus: Optional[EventBus] = None,
        builtins: Iterable[Category] = BUILTIN_CATEGORIES,
    ):
        self._builtins = tuple(builtins)
        self._customs: dict[str, str] = dict(customs or {})
        self._bus = bus

    def categories(self) -> tuple[Category, ...]:
        return merge(self._builtins, self._customs)

    def names(self) -> list[str]:
        return [c.name for c in self.categories()]

    def customs(self) -> dict[str, str]:
        return dict(self._customs)

    def choices(self, current: str = "") -> list[str]:
        """Names offered when editing an expense.

        A category removed since the expense was written stays selectable
        for that expense, after the registry names.
        """
        names = self.names()
        if current and current not in names:
            names.append(current)
        return names

    def get(self, name: str) -> Maybe[Category]:
        return safe_category(self.categories(), name)

    def color_for(self, name: str) -> str:
        return self.get(name).map(lambda c: c.color).get_or_else(FALLBACK_COLOR)

    def is_builtin(self, name: str) -> bool:
        return any(c.name == name for c in self._builtins)

    def add(self, name: str, color: str) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValidationFailure([{"field": "name", "message": "category name is required"}])
        if self.get(name).is_some():
            raise DuplicateCategory(name)

        self._customs[name] = color
        logger.info("Added category %s", name)
        self._publish(CATEGORY_ADDED, {"name": name, "color": color})
        return Category(name, color)

    def remove(self, name: str) -> None:
        """Drop a custom category.

        Transactions using it are left untouched and fall back to the
        default color from now on.
        """
        if self.is_builtin(name):
            raise ProtectedCategory(name)
        if name not in self._customs:
            raise CategoryNotFound(name)

        del self._customs[name]
        logger.info("Removed category %s", name)
        self._publish(CATEGORY_REMOVED, {"name": name})

    def _publish(self, event: str, payload: dict) -> None:
        if self._bus is not None:
            self._bus.publish(event, {**payload, "customs": self.customs()})
