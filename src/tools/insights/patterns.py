from __future__ import annotations

from typing import Any

from application.engine import AggregationEngine
from domain.models import LedgerSnapshot
from domain.schemas import ToolRequest
from tools._ledger_support import LedgerTool, default_top_n, int_arg
from tools.registry import register_tool


@register_tool
class DayOfWeekTool(LedgerTool):
    name = "insights.day_of_week"
    description = "Expense total and count per weekday, Sunday first."

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        days = engine.day_of_week(snapshot.transactions)
        busiest = max(days, key=lambda entry: entry.total)
        return {
            "days": [entry.model_dump(mode="json") for entry in days],
            "busiest_day": busiest.day if busiest.count else None,
        }


@register_tool
class TopExpensesTool(LedgerTool):
    name = "insights.top_expenses"
    description = "The `n` largest single expenses (default LEDGER_TOP_N or 10) with category name and color."
    args_schema = {"type": "object", "properties": {"n": {"type": "integer", "minimum": 0, "maximum": 500}}}

    def parse_args(self, args: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        n, error = int_arg(args, "n", default_top_n(), minimum=0, maximum=500)
        return {"n": n}, [error] if error else []

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        expenses = engine.top_expenses(snapshot.transactions, snapshot.categories, params["n"])
        return {"expenses": [entry.model_dump(mode="json") for entry in expenses], "n": params["n"]}
