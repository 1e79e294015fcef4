from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from domain.models import TransactionType
from domain.schemas import CategoryCreate, TransactionCreate
from infrastructure.storage.store import LedgerStore

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    ("Groceries", "#22c55e", "shopping-cart"),
    ("Dining", "#f97316", "utensils"),
    ("Transport", "#3b82f6", "car"),
    ("Entertainment", "#a855f7", "gamepad-2"),
    ("Utilities", "#eab308", "zap"),
    ("Healthcare", "#ef4444", "heart-pulse"),
    ("Shopping", "#ec4899", "shopping-bag"),
    ("Subscriptions", "#06b6d4", "repeat"),
    ("Salary", "#10b981", "banknote"),
    ("Investments", "#6366f1", "trending-up"),
)

# (amount, description, type, days ago, category name)
SAMPLE_TRANSACTIONS = (
    ("5000", "Monthly Salary", TransactionType.INCOME, 0, "Salary"),
    ("150", "Weekly Groceries", TransactionType.EXPENSE, 1, "Groceries"),
    ("45", "Uber Ride", TransactionType.EXPENSE, 2, "Transport"),
    ("85", "Restaurant Dinner", TransactionType.EXPENSE, 3, "Dining"),
    ("200", "Electric Bill", TransactionType.EXPENSE, 4, "Utilities"),
    ("15", "Netflix Subscription", TransactionType.EXPENSE, 5, "Subscriptions"),
    ("120", "New Shoes", TransactionType.EXPENSE, 6, "Shopping"),
    ("35", "Coffee & Snacks", TransactionType.EXPENSE, 7, "Dining"),
    ("500", "Freelance Payment", TransactionType.INCOME, 8, "Salary"),
    ("75", "Gas Station", TransactionType.EXPENSE, 9, "Transport"),
    ("250", "Concert Tickets", TransactionType.EXPENSE, 10, "Entertainment"),
    ("90", "Pharmacy", TransactionType.EXPENSE, 12, "Healthcare"),
    ("65", "Lunch with Clients", TransactionType.EXPENSE, 14, "Dining"),
    ("180", "Grocery Run", TransactionType.EXPENSE, 16, "Groceries"),
    ("1000", "Stock Dividends", TransactionType.INCOME, 20, "Investments"),
    ("40", "Book Purchase", TransactionType.EXPENSE, 22, "Shopping"),
    ("300", "Internet Bill", TransactionType.EXPENSE, 25, "Utilities"),
    ("55", "Spotify Premium", TransactionType.EXPENSE, 28, "Subscriptions"),
)


def seed_store(store: LedgerStore, now: datetime | None = None) -> tuple[int, int]:
    """Add the default categories (skipping names already present) and the sample transactions.

    Returns (categories_created, transactions_created).
    """
    now = now or datetime.now(timezone.utc)
    by_name = {category.name: category.id for category in store.list_categories()}

    created_categories = 0
    for name, color, icon in DEFAULT_CATEGORIES:
        if name in by_name:
            continue
        by_name[name] = store.create_category(CategoryCreate(name=name, color=color, icon=icon)).id
        created_categories += 1

    for amount, description, txn_type, days_ago, category in SAMPLE_TRANSACTIONS:
        store.create_transaction(
            TransactionCreate(
                amount=Decimal(amount),
                description=description,
                type=txn_type,
                category_id=by_name.get(category),
                date=now - timedelta(days=days_ago),
            )
        )

    logger.info(
        "Seeded store=%s categories=%d transactions=%d",
        store.name,
        created_categories,
        len(SAMPLE_TRANSACTIONS),
    )
    return created_categories, len(SAMPLE_TRANSACTIONS)
