from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from decimal import Decimal
from typing import Any, Mapping

from domain.models import DEFAULT_COLOR, Category, Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinanceState:
    """
    Client-side view of the ledger. Never mutated; every action returns a new state.

    Only categories survive a restart (see persisted_subset); transactions are
    always reloaded from storage.
    """

    transactions: tuple[Transaction, ...] = ()
    categories: tuple[Category, ...] = ()
    is_loading: bool = True
    error: str | None = None


# ---- actions ----

def set_transactions(state: FinanceState, transactions: list[Transaction] | tuple[Transaction, ...]) -> FinanceState:
    return replace(state, transactions=tuple(transactions))


def set_categories(state: FinanceState, categories: list[Category] | tuple[Category, ...]) -> FinanceState:
    return replace(state, categories=tuple(categories))


def add_transaction(state: FinanceState, transaction: Transaction) -> FinanceState:
    return replace(state, transactions=(transaction, *state.transactions))


def update_transaction(state: FinanceState, transaction_id: str, changes: Mapping[str, Any]) -> FinanceState:
    """Merge `changes` into the transaction with `transaction_id`. Unknown ids leave the state as is."""
    fields = {key: value for key, value in changes.items() if key != "id"}
    return replace(
        state,
        transactions=tuple(
            replace(txn, **fields) if txn.id == transaction_id else txn
            for txn in state.transactions
        ),
    )


def delete_transaction(state: FinanceState, transaction_id: str) -> FinanceState:
    return replace(state, transactions=tuple(t for t in state.transactions if t.id != transaction_id))


def set_loading(state: FinanceState, is_loading: bool) -> FinanceState:
    return replace(state, is_loading=is_loading)


def set_error(state: FinanceState, error: str | None) -> FinanceState:
    if error:
        logger.warning("FinanceState error=%s", error)
    return replace(state, error=error)


# ---- persistence ----

def persisted_subset(state: FinanceState) -> dict[str, list[dict[str, Any]]]:
    categories = []
    for category in state.categories:
        payload = asdict(category)
        if payload["budget"] is not None:
            payload["budget"] = str(payload["budget"])
        categories.append(payload)
    return {"categories": categories}


def restore_state(payload: Mapping[str, Any] | None) -> FinanceState:
    categories = []
    for raw in (payload or {}).get("categories") or []:
        budget = raw.get("budget")
        categories.append(
            Category(
                id=raw["id"],
                name=raw["name"],
                color=raw.get("color") or DEFAULT_COLOR,
                icon=raw.get("icon") or "tag",
                budget=Decimal(str(budget)) if budget is not None else None,
            )
        )
    return FinanceState(categories=tuple(categories))
