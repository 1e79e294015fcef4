from __future__ import annotations

from typing import Any

from application.engine import AggregationEngine
from domain.models import LedgerSnapshot, TransactionType
from domain.schemas import ToolRequest, TransactionView
from tools._ledger_support import LedgerTool, int_arg
from tools.registry import register_tool

_TYPES = {"all", TransactionType.INCOME.value, TransactionType.EXPENSE.value}


@register_tool
class JournalSearchTool(LedgerTool):
    name = "journal.search"
    description = (
        "Transactions whose description contains `search` (case-insensitive), optionally narrowed "
        "to one `type` and one `account_id`, newest first and grouped by calendar day."
    )
    args_schema = {
        "type": "object",
        "properties": {
            "search": {"type": "string"},
            "type": {"type": "string", "enum": sorted(_TYPES)},
            "account_id": {"type": "string"},
            "limit": {"type": "integer", "minimum": 1, "maximum": 1000},
        },
    }

    def parse_args(self, args: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        errors: list[str] = []
        txn_type = str(args.get("type") or "all").strip().lower()
        if txn_type not in _TYPES:
            errors.append(f"type must be one of {', '.join(sorted(_TYPES))}")
        limit, error = int_arg(args, "limit", 200, minimum=1, maximum=1000)
        if error:
            errors.append(error)
        params = {
            "search": str(args.get("search") or ""),
            "type": None if txn_type == "all" else txn_type,
            "account_id": str(args.get("account_id") or "") or None,
            "limit": limit,
        }
        return params, errors

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        matches = engine.filter_transactions(
            snapshot.transactions,
            search=params["search"],
            txn_type=params["type"],
            account_id=params["account_id"],
        )
        shown = matches[: params["limit"]]
        groups = engine.group_by_day(shown)
        return {
            "match_count": len(matches),
            "totals": engine.totals(matches).model_dump(mode="json"),
            "days": [
                {
                    "day": day,
                    "transactions": [TransactionView.model_validate(txn).model_dump(mode="json") for txn in txns],
                }
                for day, txns in groups.items()
            ],
            "truncated": len(matches) > len(shown),
        }
