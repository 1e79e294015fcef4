from __future__ import annotations

import logging

from domain.models import LedgerSnapshot
from infrastructure.storage import LedgerStore, build_store

logger = logging.getLogger(__name__)


class LedgerReader:
    """
    Reads ledger snapshots out of the configured store for the report tools.

    Dynamic behavior:
    - The store is built lazily from the environment on first use
    - use_store() swaps the backing store at runtime (API startup, CLI, tests)
    """

    def __init__(self, store: LedgerStore | None = None) -> None:
        self._store = store

    # ---- store management ----
    @property
    def store(self) -> LedgerStore:
        if self._store is None:
            self._store = build_store()
        return self._store

    def use_store(self, store: LedgerStore) -> None:
        logger.info("LedgerReader switching store to %s", store.name)
        self._store = store

    def snapshot(self) -> LedgerSnapshot:
        snapshot = self.store.snapshot()
        logger.info(
            "LedgerReader snapshot store=%s transactions=%d categories=%d accounts=%d",
            self.store.name,
            len(snapshot.transactions),
            len(snapshot.categories),
            len(snapshot.accounts),
        )
        return snapshot


# Singleton instance used by the tools and interfaces.
ledger_reader = LedgerReader()
