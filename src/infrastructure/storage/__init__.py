from __future__ import annotations

import logging
import os

from infrastructure.storage.memory_store import InMemoryLedgerStore
from infrastructure.storage.sqlite_store import SqliteLedgerStore
from infrastructure.storage.store import LedgerStore, RecordNotFoundError, StorageError

logger = logging.getLogger(__name__)

__all__ = [
    "InMemoryLedgerStore",
    "LedgerStore",
    "RecordNotFoundError",
    "SqliteLedgerStore",
    "StorageError",
    "build_store",
]


def build_store(db_path: str | None = None) -> LedgerStore:
    """SQLite store when LEDGER_DB_PATH (or db_path) is set, otherwise an in-memory one."""
    path = db_path or os.getenv("LEDGER_DB_PATH")
    if path:
        logger.info("Using SQLite ledger store path=%s", path)
        return SqliteLedgerStore(path)
    logger.info("LEDGER_DB_PATH not set; using in-memory ledger store")
    return InMemoryLedgerStore()
