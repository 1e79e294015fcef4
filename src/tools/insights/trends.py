from __future__ import annotations

from typing import Any

from application.engine import AggregationEngine
from domain.models import LedgerSnapshot
from domain.schemas import ToolRequest
from tools._ledger_support import LedgerTool, int_arg
from tools.registry import register_tool

_MONTHS_SCHEMA = {"type": "integer", "minimum": 0, "maximum": 120}


@register_tool
class MonthlySeriesTool(LedgerTool):
    name = "insights.monthly_series"
    description = (
        "Income, expenses, net and transaction count for each of the last `months` calendar months "
        "(default 12), oldest first, ending with the reference month."
    )
    args_schema = {"type": "object", "properties": {"months": _MONTHS_SCHEMA}}

    def parse_args(self, args: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        months, error = int_arg(args, "months", 12, minimum=0, maximum=120)
        return {"months": months}, [error] if error else []

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        buckets = engine.monthly_series(snapshot.transactions, params["months"], request.context.reference_date)
        return {
            "months": [bucket.model_dump(mode="json") for bucket in buckets],
            "month_count": len(buckets),
        }


@register_tool
class MonthlyCategoryMatrixTool(LedgerTool):
    name = "insights.monthly_category_matrix"
    description = "Expense totals per category name for each of the last `months` months (default 6)."
    args_schema = {"type": "object", "properties": {"months": _MONTHS_SCHEMA}}

    def parse_args(self, args: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        months, error = int_arg(args, "months", 6, minimum=0, maximum=120)
        return {"months": months}, [error] if error else []

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        rows = engine.monthly_category_matrix(
            snapshot.transactions,
            snapshot.categories,
            params["months"],
            request.context.reference_date,
        )
        return {
            "rows": [row.model_dump(mode="json") for row in rows],
            "categories": [category.name for category in snapshot.categories],
        }
