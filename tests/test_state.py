from __future__ import annotations

import unittest
from dataclasses import FrozenInstanceError
from datetime import datetime
from decimal import Decimal

from application.state import (
    FinanceState,
    add_transaction,
    delete_transaction,
    persisted_subset,
    restore_state,
    set_categories,
    set_error,
    set_loading,
    set_transactions,
    update_transaction,
)
from domain.models import Category, Transaction, TransactionType


def _txn(id: str, amount: str = "10") -> Transaction:
    return Transaction(
        id=id,
        amount=Decimal(amount),
        description=f"txn {id}",
        type=TransactionType.EXPENSE,
        date=datetime(2024, 3, 1),
    )


class FinanceStateTests(unittest.TestCase):
    def test_initial_state(self) -> None:
        state = FinanceState()

        self.assertEqual(state.transactions, ())
        self.assertTrue(state.is_loading)
        self.assertIsNone(state.error)

    def test_state_is_immutable(self) -> None:
        with self.assertRaises(FrozenInstanceError):
            FinanceState().is_loading = False  # type: ignore[misc]

    def test_actions_return_new_state(self) -> None:
        original = set_transactions(FinanceState(), [_txn("a")])

        added = add_transaction(original, _txn("b"))

        self.assertEqual([t.id for t in original.transactions], ["a"])
        self.assertEqual([t.id for t in added.transactions], ["b", "a"])

    def test_update_merges_fields_by_id(self) -> None:
        state = set_transactions(FinanceState(), [_txn("a"), _txn("b")])

        updated = update_transaction(state, "b", {"amount": Decimal("99"), "description": "Renamed", "id": "hijack"})

        self.assertEqual(updated.transactions[1].id, "b")
        self.assertEqual(updated.transactions[1].amount, Decimal("99"))
        self.assertEqual(updated.transactions[1].description, "Renamed")
        self.assertEqual(updated.transactions[0], state.transactions[0])
        self.assertEqual(update_transaction(state, "missing", {"amount": Decimal("1")}), state)

    def test_delete_loading_and_error(self) -> None:
        state = set_transactions(FinanceState(), [_txn("a"), _txn("b")])

        state = delete_transaction(state, "a")
        state = set_loading(state, False)
        state = set_error(state, "boom")

        self.assertEqual([t.id for t in state.transactions], ["b"])
        self.assertFalse(state.is_loading)
        self.assertEqual(state.error, "boom")


class PersistenceTests(unittest.TestCase):
    def test_only_categories_are_persisted(self) -> None:
        state = set_categories(
            set_transactions(FinanceState(), [_txn("a")]),
            [Category(id="food", name="Food", budget=Decimal("250"))],
        )

        payload = persisted_subset(state)

        self.assertEqual(list(payload), ["categories"])
        self.assertEqual(payload["categories"][0]["budget"], "250")

    def test_restore_rebuilds_categories(self) -> None:
        payload = {"categories": [{"id": "food", "name": "Food", "color": "#000000", "budget": "250"}]}

        state = restore_state(payload)

        self.assertEqual(state.transactions, ())
        self.assertEqual(state.categories[0].budget, Decimal("250"))
        self.assertEqual(state.categories[0].icon, "tag")
        self.assertEqual(restore_state(None).categories, ())


if __name__ == "__main__":
    unittest.main()
