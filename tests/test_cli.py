from __future__ import annotations

import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from infrastructure.ledger_reader import ledger_reader
from infrastructure.storage import InMemoryLedgerStore, StorageError
from interface.cli import main


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.db = os.path.join(self.tmp.name, "ledger.db")
        store_patch = patch.object(ledger_reader, "_store", None)
        store_patch.start()
        self.addCleanup(store_patch.stop)

    def _run(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(["--db", self.db, *argv])
        return code, out.getvalue(), err.getvalue()

    def test_seed_then_insights(self) -> None:
        code, out, _ = self._run("seed")
        self.assertEqual(code, 0)
        self.assertIn("Seeded 10 categories and 18 transactions", out)

        code, out, _ = self._run("insights", "--months", "2", "--top", "3")
        self.assertEqual(code, 0)
        self.assertIn("Total income", out)
        self.assertIn("Top expenses", out)

    def test_malformed_top_n_environment_falls_back_to_default(self) -> None:
        self._run("seed")

        with patch.dict(os.environ, {"LEDGER_TOP_N": "lots"}):
            code, out, _ = self._run("insights")

        self.assertEqual(code, 0)
        top_section = out.split("Top expenses\n", 1)[1]
        self.assertEqual(len(top_section.splitlines()), 10)

    def test_export_then_import_round_trip(self) -> None:
        self._run("seed")
        target = os.path.join(self.tmp.name, "out.csv")

        code, out, _ = self._run("export", target)
        self.assertEqual(code, 0)
        self.assertIn("Exported 18 transactions", out)

        self.db = os.path.join(self.tmp.name, "second.db")
        code, out, _ = self._run("import", target)
        self.assertEqual(code, 0)
        self.assertIn("Successfully imported 18 transactions", out)

    def test_export_into_directory_uses_dated_filename(self) -> None:
        code, out, _ = self._run("export", self.tmp.name)

        self.assertEqual(code, 0)
        self.assertTrue(any(name.startswith("titan-finance-export-") for name in os.listdir(self.tmp.name)))

    def test_missing_import_file_exits_non_zero(self) -> None:
        code, _, err = self._run("import", os.path.join(self.tmp.name, "absent.csv"))

        self.assertEqual(code, 1)
        self.assertIn("titan-ledger import:", err)

    def test_storage_error_exits_non_zero(self) -> None:
        store = InMemoryLedgerStore()
        with patch("interface.cli.build_store", return_value=store), \
                patch.object(store, "list_transactions", side_effect=StorageError("database is locked")):
            code, _, err = self._run("insights")

        self.assertEqual(code, 1)
        self.assertIn("database is locked", err)


if __name__ == "__main__":
    unittest.main()
