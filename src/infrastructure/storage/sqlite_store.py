"""SQLite-backed ledger store."""
from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Iterator

from domain.models import Account, AccountType, Category, Subcategory, Transaction, TransactionType
from domain.schemas import AccountCreate, CategoryCreate, SubcategoryCreate, TransactionCreate, TransactionUpdate
from infrastructure.storage.store import LedgerStore, RecordNotFoundError, StorageError

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        color TEXT NOT NULL,
        icon TEXT NOT NULL,
        budget TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subcategories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        category_id TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        color TEXT NOT NULL,
        icon TEXT NOT NULL,
        balance TEXT NOT NULL,
        is_default INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id TEXT PRIMARY KEY,
        amount TEXT NOT NULL,
        description TEXT NOT NULL,
        type TEXT NOT NULL,
        date TEXT NOT NULL,
        category_id TEXT,
        subcategory_id TEXT,
        account_id TEXT,
        notes TEXT,
        is_recurring INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date)",
)

_TXN_COLUMNS = (
    "amount", "description", "type", "date", "category_id",
    "subcategory_id", "account_id", "notes", "is_recurring",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sort_instant(value: datetime) -> float:
    return (value if value.tzinfo else value.replace(tzinfo=timezone.utc)).timestamp()


class SqliteLedgerStore(LedgerStore):
    """Ledger tables in one SQLite file. A connection is opened per operation."""

    name = "sqlite"

    def __init__(self, db_path: str = "titan-ledger.db", clock: Callable[[], datetime] | None = None):
        self.db_path = db_path
        self._clock = clock or _utcnow
        self._init_db()

    def _init_db(self) -> None:
        with self._get_conn() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open ledger database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as exc:
            logger.exception("SQLite store operation failed db=%s", self.db_path)
            raise StorageError(f"Ledger database operation failed: {exc}") from exc
        finally:
            conn.close()

    # ---- row mapping ----
    def _to_transaction(self, row: sqlite3.Row) -> Transaction:
        return Transaction(
            id=row["id"],
            amount=Decimal(row["amount"]),
            description=row["description"],
            type=TransactionType(row["type"]),
            date=datetime.fromisoformat(row["date"]),
            category_id=row["category_id"],
            subcategory_id=row["subcategory_id"],
            account_id=row["account_id"],
            notes=row["notes"],
            is_recurring=bool(row["is_recurring"]),
        )

    def _txn_values(self, txn: Transaction) -> tuple[Any, ...]:
        return (
            str(txn.amount),
            txn.description,
            txn.type.value,
            txn.date.isoformat(),
            txn.category_id,
            txn.subcategory_id,
            txn.account_id,
            txn.notes,
            int(txn.is_recurring),
        )

    # ---- transactions ----
    def list_transactions(self) -> list[Transaction]:
        with self._get_conn() as conn:
            rows = conn.execute("SELECT * FROM transactions").fetchall()
        transactions = [self._to_transaction(row) for row in rows]
        transactions.sort(key=lambda t: _sort_instant(t.date), reverse=True)
        return transactions

    def get_transaction(self, transaction_id: str) -> Transaction:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
        if row is None:
            raise RecordNotFoundError("transaction", transaction_id)
        return self._to_transaction(row)

    def create_transaction(self, request: TransactionCreate) -> Transaction:
        self.check_subcategory(request.category_id, request.subcategory_id)
        txn = Transaction(
            id=str(uuid.uuid4()),
            amount=request.amount,
            description=request.description,
            type=request.type,
            date=request.date or self._clock(),
            category_id=request.category_id,
            subcategory_id=request.subcategory_id,
            account_id=request.account_id,
            notes=request.notes,
            is_recurring=request.is_recurring,
        )
        with self._get_conn() as conn:
            conn.execute(
                f"INSERT INTO transactions (id, {', '.join(_TXN_COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (txn.id, *self._txn_values(txn)),
            )
            conn.commit()
        logger.debug("SQLite store created transaction id=%s", txn.id)
        return txn

    def update_transaction(self, transaction_id: str, update: TransactionUpdate) -> Transaction:
        current = self.get_transaction(transaction_id)
        updated = replace(current, **update.changes())
        self.check_subcategory(updated.category_id, updated.subcategory_id)
        with self._get_conn() as conn:
            conn.execute(
                f"UPDATE transactions SET {', '.join(f'{c} = ?' for c in _TXN_COLUMNS)} WHERE id = ?",
                (*self._txn_values(updated), transaction_id),
            )
            conn.commit()
        return updated

    def delete_transaction(self, transaction_id: str) -> None:
        with self._get_conn() as conn:
            deleted = conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,)).rowcount
            conn.commit()
        if not deleted:
            raise RecordNotFoundError("transaction", transaction_id)

    # ---- categories ----
    def list_categories(self) -> list[Category]:
        with self._get_conn() as conn:
            rows = conn.execute("SELECT * FROM categories ORDER BY name ASC").fetchall()
        return [
            Category(
                id=row["id"],
                name=row["name"],
                color=row["color"],
                icon=row["icon"],
                budget=Decimal(row["budget"]) if row["budget"] is not None else None,
            )
            for row in rows
        ]

    def create_category(self, request: CategoryCreate) -> Category:
        category = Category(id=str(uuid.uuid4()), **request.model_dump())
        with self._get_conn() as conn:
            conn.execute(
                "INSERT INTO categories (id, name, color, icon, budget) VALUES (?, ?, ?, ?, ?)",
                (
                    category.id,
                    category.name,
                    category.color,
                    category.icon,
                    str(category.budget) if category.budget is not None else None,
                ),
            )
            conn.commit()
        return category

    def delete_category(self, category_id: str) -> None:
        with self._get_conn() as conn:
            deleted = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,)).rowcount
            if not deleted:
                raise RecordNotFoundError("category", category_id)
            conn.execute(
                """
                UPDATE transactions SET category_id = NULL, subcategory_id = NULL
                WHERE category_id = ?
                   OR subcategory_id IN (SELECT id FROM subcategories WHERE category_id = ?)
                """,
                (category_id, category_id),
            )
            removed = conn.execute("DELETE FROM subcategories WHERE category_id = ?", (category_id,)).rowcount
            conn.commit()
        logger.info("SQLite store deleted category id=%s subcategories=%d", category_id, removed)

    # ---- subcategories ----
    def list_subcategories(self) -> list[Subcategory]:
        with self._get_conn() as conn:
            rows = conn.execute("SELECT * FROM subcategories ORDER BY name ASC").fetchall()
        return [Subcategory(id=row["id"], name=row["name"], category_id=row["category_id"]) for row in rows]

    def create_subcategory(self, request: SubcategoryCreate) -> Subcategory:
        subcategory = Subcategory(id=str(uuid.uuid4()), name=request.name, category_id=request.category_id)
        with self._get_conn() as conn:
            exists = conn.execute("SELECT 1 FROM categories WHERE id = ?", (request.category_id,)).fetchone()
            if exists is None:
                raise RecordNotFoundError("category", request.category_id)
            conn.execute(
                "INSERT INTO subcategories (id, name, category_id) VALUES (?, ?, ?)",
                (subcategory.id, subcategory.name, subcategory.category_id),
            )
            conn.commit()
        return subcategory

    def delete_subcategory(self, subcategory_id: str) -> None:
        with self._get_conn() as conn:
            deleted = conn.execute("DELETE FROM subcategories WHERE id = ?", (subcategory_id,)).rowcount
            if not deleted:
                raise RecordNotFoundError("subcategory", subcategory_id)
            conn.execute("UPDATE transactions SET subcategory_id = NULL WHERE subcategory_id = ?", (subcategory_id,))
            conn.commit()

    # ---- accounts ----
    def list_accounts(self) -> list[Account]:
        with self._get_conn() as conn:
            rows = conn.execute("SELECT * FROM accounts ORDER BY created_at ASC, rowid ASC").fetchall()
        return [
            Account(
                id=row["id"],
                name=row["name"],
                type=AccountType(row["type"]),
                color=row["color"],
                icon=row["icon"],
                balance=Decimal(row["balance"]),
                is_default=bool(row["is_default"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def create_account(self, request: AccountCreate) -> Account:
        account = Account(id=str(uuid.uuid4()), created_at=self._clock(), **request.model_dump())
        with self._get_conn() as conn:
            conn.execute(
                """
                INSERT INTO accounts (id, name, type, color, icon, balance, is_default, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    account.id,
                    account.name,
                    account.type.value,
                    account.color,
                    account.icon,
                    str(account.balance),
                    int(account.is_default),
                    account.created_at.isoformat(),
                ),
            )
            conn.commit()
        return account

    def delete_account(self, account_id: str) -> None:
        with self._get_conn() as conn:
            deleted = conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,)).rowcount
            if not deleted:
                raise RecordNotFoundError("account", account_id)
            conn.execute("UPDATE transactions SET account_id = NULL WHERE account_id = ?", (account_id,))
            conn.commit()
