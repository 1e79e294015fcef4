from __future__ import annotations

from typing import Any

from application.engine import AggregationEngine
from domain.models import LedgerSnapshot
from domain.schemas import ToolRequest
from tools._ledger_support import LedgerTool, int_arg
from tools.registry import register_tool


@register_tool
class WeeklyReviewTool(LedgerTool):
    name = "review.weekly"
    description = (
        "Income, expenses, savings rate and grade for the window from the start of the day `days` "
        "days before the reference date (default 7) through the end of the reference day, plus "
        "spending per category, the number of uncategorized transactions and the uncategorized expenses "
        "waiting for a category."
    )
    args_schema = {"type": "object", "properties": {"days": {"type": "integer", "minimum": 1, "maximum": 366}}}

    def parse_args(self, args: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        days, error = int_arg(args, "days", 7, minimum=1, maximum=366)
        return {"days": days}, [error] if error else []

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        review = engine.weekly_review(
            snapshot.transactions,
            snapshot.categories,
            reference=request.context.reference_date,
            days=params["days"],
        )
        return review.model_dump(mode="json")
