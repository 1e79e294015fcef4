from __future__ import annotations

from typing import Any

from application.csv_transfer import export_csv, export_filename
from application.engine import AggregationEngine
from domain.models import LedgerSnapshot
from domain.schemas import ToolRequest
from tools._ledger_support import LedgerTool
from tools.registry import register_tool


@register_tool
class ExportCsvTool(LedgerTool):
    name = "sync.export_csv"
    description = "Every transaction as CSV text (Date, Description, Type, Amount, Category) plus a suggested filename."

    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        content = export_csv(snapshot.transactions, snapshot.categories, engine.timezone_name)
        return {
            "filename": export_filename(engine.reference_point(request.context.reference_date).date()),
            "row_count": len(snapshot.transactions),
            "content": content,
        }
