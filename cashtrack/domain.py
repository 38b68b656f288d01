import calendar
from abc import ABC, abstractmethod
from dataclasses import KW_ONLY, dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional


class Kind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    BILL = "bill"

    @property
    def collection(self) -> str:
        # store collection names
        return {"income": "income", "expense": "expenses", "bill": "bills"}[self.value]

    @property
    def label_field(self) -> str:
        return "source" if self is Kind.INCOME else "description"


@dataclass(frozen=True)
class Transaction(ABC):
    id: str
    date: date
    amount: Decimal
    _: KW_ONLY
    notes: str = ""
    tags: tuple[str, ...] = ()
    recurring: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    kind: ClassVar[Kind]

    @property
    @abstractmethod
    def label(self) -> str:
        pass


@dataclass(frozen=True)
class Income(Transaction):
    source: str
    kind: ClassVar[Kind] = Kind.INCOME

    @property
    def label(self) -> str:
        return self.source


@dataclass(frozen=True)
class Expense(Transaction):
    description: str
    category: str = ""
    kind: ClassVar[Kind] = Kind.EXPENSE

    @property
    def label(self) -> str:
        return self.description


@dataclass(frozen=True)
class Bill(Transaction):
    description: str
    kind: ClassVar[Kind] = Kind.BILL

    @property
    def label(self) -> str:
        return self.description


VARIANTS: dict[Kind, type[Transaction]] = {
    Kind.INCOME: Income,
    Kind.EXPENSE: Expense,
    Kind.BILL: Bill,
}


@dataclass(frozen=True, order=True)
class Period:
    year: int
    month: int  # 1..12

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @classmethod
    def of(cls, d: date) -> "Period":
        return cls(d.year, d.month)

    def shift(self, months: int) -> "Period":
        index = self.year * 12 + (self.month - 1) + months
        return Period(index // 12, index % 12 + 1)

    def previous(self) -> "Period":
        return self.shift(-1)

    def next(self) -> "Period":
        return self.shift(1)

    @property
    def days(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        """First day of the following month (exclusive bound)."""
        return self.start + timedelta(days=self.days)

    @property
    def label(self) -> str:
        return self.start.strftime("%b %Y")

    def __str__(self) -> str:
        return f"{self.year}-{self.month:02d}"


@dataclass(frozen=True)
class Category:
    name: str
    color: str
    builtin: bool = False


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str
    display_name: str = ""
