from __future__ import annotations

import logging
import os
from dataclasses import asdict
from datetime import date
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

import tools  # noqa: F401
from application.csv_transfer import CsvImporter, export_csv, export_filename
from application.engine import AggregationEngine
from application.tool_executor import ToolExecutor
from domain.schemas import (
    AccountCreate,
    AccountView,
    CategoryCreate,
    CategoryView,
    ImportSummary,
    SubcategoryCreate,
    SubcategoryView,
    ToolCall,
    ToolContext,
    ToolRequest,
    ToolResponse,
    TransactionCreate,
    TransactionUpdate,
    TransactionView,
)
from infrastructure.ledger_reader import ledger_reader
from infrastructure.storage import RecordNotFoundError, StorageError
from tools._ledger_support import default_top_n
from tools.registry import registry

logger = logging.getLogger(__name__)

app = FastAPI(title="Titan Ledger API")
executor = ToolExecutor(registry)


class ToolInvocation(BaseModel):
    args: dict[str, Any] = Field(default_factory=dict)
    context: ToolContext = Field(default_factory=ToolContext)


class ToolBatch(BaseModel):
    calls: list[ToolCall]
    context: ToolContext = Field(default_factory=ToolContext)


def _timezone() -> str:
    return os.getenv("LEDGER_TIMEZONE") or "UTC"


@app.exception_handler(RecordNotFoundError)
def record_not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StorageError)
def storage_failed(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "store": ledger_reader.store.name}


# ---- reports ----

@app.get("/insights")
def insights(
    months: int = Query(default=12, ge=0, le=120),
    top: Optional[int] = Query(default=None, ge=0, le=500),
    reference_date: Optional[date] = None,
    timezone: Optional[str] = None,
) -> dict[str, Any]:
    try:
        engine = AggregationEngine(timezone or _timezone())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    snapshot = ledger_reader.snapshot()
    report = engine.insights(
        snapshot.transactions,
        snapshot.categories,
        snapshot.accounts,
        reference=reference_date,
        top_n=default_top_n() if top is None else top,
        month_count=months,
    )
    return report.model_dump(mode="json")


@app.get("/tools")
def list_tools() -> list[dict[str, Any]]:
    return [asdict(spec) for spec in registry.list_specs()]


@app.post("/tools")
def run_tool_batch(batch: ToolBatch) -> list[ToolResponse]:
    return executor.run_calls(batch.calls, batch.context, batch_id="api")


@app.post("/tools/{name}")
def run_tool(name: str, invocation: Optional[ToolInvocation] = None) -> ToolResponse:
    invocation = invocation or ToolInvocation()
    if name not in registry:
        raise HTTPException(status_code=404, detail=f"Tool not registered: {name}")
    request = ToolRequest(request_id=f"api:{name}", tool=name, args=invocation.args, context=invocation.context)
    return registry.get_tool(name).run(request)


# ---- sync ----

@app.get("/sync/export")
def sync_export() -> Response:
    engine = AggregationEngine(_timezone())
    snapshot = ledger_reader.snapshot()
    content = export_csv(snapshot.transactions, snapshot.categories, engine.timezone_name)
    filename = export_filename(engine.reference_point().date())
    logger.info("CSV export rows=%d filename=%s", len(snapshot.transactions), filename)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/sync/import")
async def sync_import(request: Request) -> ImportSummary:
    raw = await request.body()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV body must be UTF-8 text") from exc
    return CsvImporter(ledger_reader.store, timezone_name=_timezone()).import_csv(content)


# ---- records ----

@app.get("/transactions")
def list_transactions() -> list[TransactionView]:
    return [TransactionView.model_validate(txn) for txn in ledger_reader.store.list_transactions()]


@app.post("/transactions", status_code=201)
def create_transaction(payload: TransactionCreate) -> TransactionView:
    try:
        txn = ledger_reader.store.create_transaction(payload)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return TransactionView.model_validate(txn)


@app.get("/transactions/{transaction_id}")
def get_transaction(transaction_id: str) -> TransactionView:
    return TransactionView.model_validate(ledger_reader.store.get_transaction(transaction_id))


@app.patch("/transactions/{transaction_id}")
def update_transaction(transaction_id: str, payload: TransactionUpdate) -> TransactionView:
    try:
        txn = ledger_reader.store.update_transaction(transaction_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return TransactionView.model_validate(txn)


@app.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: str) -> Response:
    ledger_reader.store.delete_transaction(transaction_id)
    return Response(status_code=204)


@app.get("/categories")
def list_categories() -> list[CategoryView]:
    return [CategoryView.model_validate(category) for category in ledger_reader.store.list_categories()]


@app.post("/categories", status_code=201)
def create_category(payload: CategoryCreate) -> CategoryView:
    return CategoryView.model_validate(ledger_reader.store.create_category(payload))


@app.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: str) -> Response:
    ledger_reader.store.delete_category(category_id)
    return Response(status_code=204)


@app.get("/subcategories")
def list_subcategories(category_id: Optional[str] = None) -> list[SubcategoryView]:
    subcategories = ledger_reader.store.list_subcategories()
    if category_id is not None:
        subcategories = [sub for sub in subcategories if sub.category_id == category_id]
    return [SubcategoryView.model_validate(sub) for sub in subcategories]


@app.post("/subcategories", status_code=201)
def create_subcategory(payload: SubcategoryCreate) -> SubcategoryView:
    return SubcategoryView.model_validate(ledger_reader.store.create_subcategory(payload))


@app.delete("/subcategories/{subcategory_id}", status_code=204)
def delete_subcategory(subcategory_id: str) -> Response:
    ledger_reader.store.delete_subcategory(subcategory_id)
    return Response(status_code=204)


@app.get("/accounts")
def list_accounts() -> list[AccountView]:
    return [AccountView.model_validate(account) for account in ledger_reader.store.list_accounts()]


@app.post("/accounts", status_code=201)
def create_account(payload: AccountCreate) -> AccountView:
    return AccountView.model_validate(ledger_reader.store.create_account(payload))


@app.delete("/accounts/{account_id}", status_code=204)
def delete_account(account_id: str) -> Response:
    ledger_reader.store.delete_account(account_id)
    return Response(status_code=204)
