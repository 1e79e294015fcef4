from __future__ import annotations

from typing import Any

from application.engine import AggregationEngine
from domain.models import LedgerSnapshot
from domain.schemas import ToolRequest
from tools._ledger_support import LedgerTool
from tools.registry import register_tool


@register_tool
class CategoryBreakdownTool(LedgerTool):
    name = "insights.category_breakdown"
    description = (
        "All-time expense totals per category, largest first, with each category's share of "
        "categorized spending. Uncategorized expenses are left out."
    )

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        entries = engine.category_breakdown(snapshot.transactions, snapshot.categories)
        return {
            "categories": [entry.model_dump(mode="json") for entry in entries],
            "category_count": len(entries),
            "total_categorized": float(sum(entry.total for entry in entries)),
        }


@register_tool
class AccountBreakdownTool(LedgerTool):
    name = "insights.account_breakdown"
    description = "Spent, received and transaction count per account. Accounts without activity are omitted."

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        entries = engine.account_breakdown(snapshot.transactions, snapshot.accounts)
        return {"accounts": [entry.model_dump(mode="json") for entry in entries]}
