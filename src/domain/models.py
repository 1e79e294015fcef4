from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

DEFAULT_COLOR = "#71717a"
UNCATEGORIZED = "Uncategorized"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class AccountType(str, Enum):
    BANK = "bank"
    CASH = "cash"
    CREDIT = "credit"
    SAVINGS = "savings"
    CUSTOM = "custom"


@dataclass
class Category:
    id: str
    name: str
    color: str = DEFAULT_COLOR
    icon: str = "tag"
    # Reserved for budget comparison; no report reads it yet.
    budget: Decimal | None = None


@dataclass
class Subcategory:
    id: str
    name: str
    category_id: str


@dataclass
class Account:
    id: str
    name: str
    type: AccountType = AccountType.CUSTOM
    color: str = DEFAULT_COLOR
    icon: str = "wallet"
    # Stored nominal value. Never reconciled with transaction sums.
    balance: Decimal = Decimal("0")
    is_default: bool = False
    created_at: datetime | None = None


@dataclass
class Transaction:
    id: str
    amount: Decimal
    description: str
    type: TransactionType
    date: datetime
    category_id: str | None = None
    subcategory_id: str | None = None
    account_id: str | None = None
    notes: str | None = None
    is_recurring: bool = False

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME


@dataclass
class LedgerSnapshot:
    """One consistent read of every entity list, as handed to the reports."""

    transactions: list[Transaction] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    subcategories: list[Subcategory] = field(default_factory=list)
    accounts: list[Account] = field(default_factory=list)
