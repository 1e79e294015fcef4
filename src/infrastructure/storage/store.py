from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import Account, Category, LedgerSnapshot, Subcategory, Transaction
from domain.schemas import AccountCreate, CategoryCreate, SubcategoryCreate, TransactionCreate, TransactionUpdate


class StorageError(RuntimeError):
    pass


class RecordNotFoundError(StorageError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class LedgerStore(ABC):
    """
    Storage contract for ledger entities.

    Deleting a category removes its subcategories and clears category and
    subcategory references on transactions. Deleting a subcategory or an
    account clears the matching reference. Transactions are never deleted by
    cascade.
    """

    name: str = "store"

    # ---- transactions ----
    @abstractmethod
    def list_transactions(self) -> list[Transaction]:
        """All transactions, newest first."""
        raise NotImplementedError

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Transaction:
        raise NotImplementedError

    @abstractmethod
    def create_transaction(self, request: TransactionCreate) -> Transaction:
        raise NotImplementedError

    @abstractmethod
    def update_transaction(self, transaction_id: str, update: TransactionUpdate) -> Transaction:
        raise NotImplementedError

    @abstractmethod
    def delete_transaction(self, transaction_id: str) -> None:
        raise NotImplementedError

    # ---- categories ----
    @abstractmethod
    def list_categories(self) -> list[Category]:
        """All categories, ordered by name."""
        raise NotImplementedError

    @abstractmethod
    def create_category(self, request: CategoryCreate) -> Category:
        raise NotImplementedError

    @abstractmethod
    def delete_category(self, category_id: str) -> None:
        raise NotImplementedError

    # ---- subcategories ----
    @abstractmethod
    def list_subcategories(self) -> list[Subcategory]:
        raise NotImplementedError

    @abstractmethod
    def create_subcategory(self, request: SubcategoryCreate) -> Subcategory:
        raise NotImplementedError

    @abstractmethod
    def delete_subcategory(self, subcategory_id: str) -> None:
        raise NotImplementedError

    # ---- accounts ----
    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """All accounts, in creation order."""
        raise NotImplementedError

    @abstractmethod
    def create_account(self, request: AccountCreate) -> Account:
        raise NotImplementedError

    @abstractmethod
    def delete_account(self, account_id: str) -> None:
        raise NotImplementedError

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            transactions=self.list_transactions(),
            categories=self.list_categories(),
            subcategories=self.list_subcategories(),
            accounts=self.list_accounts(),
        )

    def check_subcategory(self, category_id: str | None, subcategory_id: str | None) -> None:
        if subcategory_id is None:
            return
        owner = next((s.category_id for s in self.list_subcategories() if s.id == subcategory_id), None)
        if owner is None:
            raise RecordNotFoundError("subcategory", subcategory_id)
        if owner != category_id:
            raise ValueError(f"subcategory {subcategory_id} does not belong to category {category_id}")
