from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from application.csv_transfer import CsvImporter, export_csv, export_filename
from application.engine import AggregationEngine
from application.formatting import (
    format_compact,
    format_currency,
    format_percentage,
    format_transaction_date,
)
from domain.schemas import InsightsReport
from infrastructure.ledger_reader import ledger_reader
from infrastructure.storage import StorageError, build_store
from infrastructure.storage.seed import seed_store
from interface.bootstrap import configure
from tools._ledger_support import default_top_n

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="titan-ledger", description="Personal finance ledger reports.")
    parser.add_argument("--db", help="SQLite database path (defaults to LEDGER_DB_PATH, else in-memory).")
    parser.add_argument("--timezone", help="Reporting timezone (defaults to LEDGER_TIMEZONE, else UTC).")
    sub = parser.add_subparsers(dest="command", required=True)

    insights = sub.add_parser("insights", help="Print the insights report.")
    insights.add_argument("--months", type=int, default=12)
    insights.add_argument("--top", type=int, help="Number of top expenses (defaults to LEDGER_TOP_N, else 10).")
    insights.add_argument("--json", action="store_true", help="Print the raw report as JSON.")

    export = sub.add_parser("export", help="Write every transaction to a CSV file.")
    export.add_argument("path", nargs="?", help="Output file or directory (default: dated file in cwd).")

    importer = sub.add_parser("import", help="Import transactions from a CSV file.")
    importer.add_argument("path")

    sub.add_parser("seed", help="Load the default categories and sample transactions.")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default=os.getenv("LEDGER_HOST", "127.0.0.1"))
    serve.add_argument("--port", type=int, default=int(os.getenv("LEDGER_PORT", "8000")))
    return parser


def render_report(report: InsightsReport, locale: str | None = None) -> str:
    stats = report.stats
    lines = [
        f"Insights as of {format_transaction_date(report.reference)} ({report.timezone})",
        "",
        f"Total income     {format_currency(stats.total_income, 0, locale)}",
        f"Total expenses   {format_currency(stats.total_expenses, 0, locale)}",
        f"Net savings      {format_currency(stats.net_savings, 0, locale)}",
        f"Savings rate     {format_percentage(stats.savings_rate)}",
        f"This month       {format_currency(stats.current_month_expenses, 0, locale)}"
        f" ({format_percentage(stats.month_over_month_change)} vs last month)",
        "",
        "Monthly trend",
    ]
    for bucket in report.monthly_data:
        lines.append(
            f"  {bucket.month:<9} in {format_compact(bucket.income):>7}  out {format_compact(bucket.expenses):>7}"
            f"  ({bucket.transaction_count} txns)"
        )
    if report.category_breakdown:
        lines += ["", "Spending by category"]
        for entry in report.category_breakdown:
            lines.append(
                f"  {entry.name:<16} {format_currency(entry.total, 2, locale):>14}  {format_percentage(entry.percentage)}"
            )
    if report.top_expenses:
        lines += ["", "Top expenses"]
        for expense in report.top_expenses:
            lines.append(
                f"  {format_transaction_date(expense.date):<13} {expense.description:<28}"
                f" {format_currency(expense.amount, 2, locale):>14}  {expense.category}"
            )
    return "\n".join(lines)


def _insights(args: argparse.Namespace, engine: AggregationEngine) -> None:
    snapshot = ledger_reader.snapshot()
    report = engine.insights(
        snapshot.transactions,
        snapshot.categories,
        snapshot.accounts,
        top_n=default_top_n() if args.top is None else args.top,
        month_count=args.months,
    )
    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        print(render_report(report))


def _export(args: argparse.Namespace, engine: AggregationEngine) -> None:
    snapshot = ledger_reader.snapshot()
    filename = export_filename(engine.reference_point().date())
    target = Path(args.path) if args.path else Path(filename)
    if target.is_dir():
        target = target / filename
    target.write_text(export_csv(snapshot.transactions, snapshot.categories, engine.timezone_name), encoding="utf-8")
    print(f"Exported {len(snapshot.transactions)} transactions to {target}")


def _import(args: argparse.Namespace, engine: AggregationEngine) -> None:
    content = Path(args.path).read_text(encoding="utf-8-sig")
    summary = CsvImporter(ledger_reader.store, timezone_name=engine.timezone_name).import_csv(content)
    print(summary.message)


def _seed(args: argparse.Namespace, engine: AggregationEngine) -> None:
    categories, transactions = seed_store(ledger_reader.store)
    print(f"Seeded {categories} categories and {transactions} transactions into the {ledger_reader.store.name} store")


def _serve(args: argparse.Namespace, engine: AggregationEngine) -> None:
    import uvicorn

    uvicorn.run("interface.api:app", host=args.host, port=args.port)


COMMANDS = {
    "insights": _insights,
    "export": _export,
    "import": _import,
    "seed": _seed,
    "serve": _serve,
}


def main(argv: list[str] | None = None) -> int:
    configure()
    args = build_parser().parse_args(argv)
    try:
        engine = AggregationEngine(args.timezone or os.getenv("LEDGER_TIMEZONE") or "UTC")
        if args.db:
            ledger_reader.use_store(build_store(args.db))
        COMMANDS[args.command](args, engine)
    except (StorageError, OSError, ValueError) as exc:
        logger.error("Command failed command=%s error=%s", args.command, exc)
        print(f"titan-ledger {args.command}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
