from __future__ import annotations

from typing import Any

from application.engine import AggregationEngine
from domain.models import LedgerSnapshot
from domain.schemas import ToolRequest
from tools._ledger_support import LedgerTool, default_top_n, int_arg
from tools.registry import register_tool


@register_tool
class OverallStatsTool(LedgerTool):
    name = "insights.overall_stats"
    description = (
        "All-time totals, 12-month averages, current-month expenses, month-over-month change "
        "and savings rate."
    )

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        stats = engine.overall_stats(snapshot.transactions, request.context.reference_date)
        return stats.model_dump(mode="json")


@register_tool
class InsightsReportTool(LedgerTool):
    name = "insights.report"
    description = "Every insights view in one response, computed from a single snapshot."
    args_schema = {
        "type": "object",
        "properties": {
            "months": {"type": "integer", "minimum": 0, "maximum": 120},
            "top": {"type": "integer", "minimum": 0, "maximum": 500},
        },
    }

    def parse_args(self, args: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        months, months_error = int_arg(args, "months", 12, minimum=0, maximum=120)
        top, top_error = int_arg(args, "top", default_top_n(), minimum=0, maximum=500)
        return {"months": months, "top": top}, [e for e in (months_error, top_error) if e]

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        report = engine.insights(
            snapshot.transactions,
            snapshot.categories,
            snapshot.accounts,
            reference=request.context.reference_date,
            top_n=params["top"],
            month_count=params["months"],
        )
        return report.model_dump(mode="json")
