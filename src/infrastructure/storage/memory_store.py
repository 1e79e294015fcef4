from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from domain.models import Account, Category, Subcategory, Transaction
from domain.schemas import AccountCreate, CategoryCreate, SubcategoryCreate, TransactionCreate, TransactionUpdate
from infrastructure.storage.store import LedgerStore, RecordNotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(txn: Transaction) -> float:
    when = txn.date if txn.date.tzinfo else txn.date.replace(tzinfo=timezone.utc)
    return -when.timestamp()


class InMemoryLedgerStore(LedgerStore):
    """Dict-backed store. Used by the tests and whenever no database is configured."""

    name = "memory"

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._transactions: dict[str, Transaction] = {}
        self._categories: dict[str, Category] = {}
        self._subcategories: dict[str, Subcategory] = {}
        self._accounts: dict[str, Account] = {}

    # ---- transactions ----
    def list_transactions(self) -> list[Transaction]:
        return sorted(self._transactions.values(), key=_newest_first)

    def get_transaction(self, transaction_id: str) -> Transaction:
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise RecordNotFoundError("transaction", transaction_id) from None

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
        self._transactions[txn.id] = txn
        logger.debug("Memory store created transaction id=%s type=%s", txn.id, txn.type.value)
        return txn

    def update_transaction(self, transaction_id: str, update: TransactionUpdate) -> Transaction:
        current = self.get_transaction(transaction_id)
        updated = replace(current, **update.changes())
        self.check_subcategory(updated.category_id, updated.subcategory_id)
        self._transactions[transaction_id] = updated
        return updated

    def delete_transaction(self, transaction_id: str) -> None:
        if self._transactions.pop(transaction_id, None) is None:
            raise RecordNotFoundError("transaction", transaction_id)

    # ---- categories ----
    def list_categories(self) -> list[Category]:
        return sorted(self._categories.values(), key=lambda c: c.name)

    def create_category(self, request: CategoryCreate) -> Category:
        category = Category(id=str(uuid.uuid4()), **request.model_dump())
        self._categories[category.id] = category
        return category

    def delete_category(self, category_id: str) -> None:
        if self._categories.pop(category_id, None) is None:
            raise RecordNotFoundError("category", category_id)
        owned = {s.id for s in self._subcategories.values() if s.category_id == category_id}
        for subcategory_id in owned:
            del self._subcategories[subcategory_id]
        cleared = 0
        for txn_id, txn in self._transactions.items():
            if txn.category_id == category_id or txn.subcategory_id in owned:
                self._transactions[txn_id] = replace(txn, category_id=None, subcategory_id=None)
                cleared += 1
        logger.info("Memory store deleted category id=%s subcategories=%d transactions_cleared=%d", category_id, len(owned), cleared)

    # ---- subcategories ----
    def list_subcategories(self) -> list[Subcategory]:
        return sorted(self._subcategories.values(), key=lambda s: s.name)

    def create_subcategory(self, request: SubcategoryCreate) -> Subcategory:
        if request.category_id not in self._categories:
            raise RecordNotFoundError("category", request.category_id)
        subcategory = Subcategory(id=str(uuid.uuid4()), name=request.name, category_id=request.category_id)
        self._subcategories[subcategory.id] = subcategory
        return subcategory

    def delete_subcategory(self, subcategory_id: str) -> None:
        if self._subcategories.pop(subcategory_id, None) is None:
            raise RecordNotFoundError("subcategory", subcategory_id)
        for txn_id, txn in self._transactions.items():
            if txn.subcategory_id == subcategory_id:
                self._transactions[txn_id] = replace(txn, subcategory_id=None)

    # ---- accounts ----
    def list_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    def create_account(self, request: AccountCreate) -> Account:
        account = Account(id=str(uuid.uuid4()), created_at=self._clock(), **request.model_dump())
        self._accounts[account.id] = account
        return account

    def delete_account(self, account_id: str) -> None:
        if self._accounts.pop(account_id, None) is None:
            raise RecordNotFoundError("account", account_id)
        for txn_id, txn in self._transactions.items():
            if txn.account_id == account_id:
                self._transactions[txn_id] = replace(txn, account_id=None)
