from __future__ import annotations

import logging
import os
from abc import abstractmethod
from typing import Any

from application.engine import AggregationEngine
from domain.models import LedgerSnapshot
from domain.schemas import ToolRequest, ToolResponse
from infrastructure.ledger_reader import ledger_reader
from tools.base import Tool

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 10


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def int_arg(
    args: dict[str, Any],
    key: str,
    default: int,
    minimum: int = 0,
    maximum: int | None = None,
) -> tuple[int, str | None]:
    """Read an integer arg. Returns (value, error); on error the default comes back with a message."""
    raw = args.get(key)
    if raw is None:
        return default, None
    value = _as_int(raw)
    if value is None:
        return default, f"{key} must be an integer"
    if maximum is None and value < minimum:
        return default, f"{key} must be >= {minimum}"
    if maximum is not None and not minimum <= value <= maximum:
        return default, f"{key} must be between {minimum} and {maximum}"
    return value, None


def default_top_n() -> int:
    return _as_int(os.getenv("LEDGER_TOP_N")) or DEFAULT_TOP_N


def timezone_name(request: ToolRequest) -> str:
    # A non-UTC context timezone wins over LEDGER_TIMEZONE.
    if request.context.timezone and request.context.timezone.upper() != "UTC":
        return request.context.timezone
    return os.getenv("LEDGER_TIMEZONE") or "UTC"


def build_engine(request: ToolRequest) -> AggregationEngine:
    """Engine in the request's reporting timezone. Raises ValueError for unknown zones."""
    return AggregationEngine(timezone_name(request))


def load_snapshot() -> LedgerSnapshot:
    return ledger_reader.snapshot()


class LedgerTool(Tool):
    """
    Template for tools that read one ledger snapshot and build a view from it.

    Subclasses implement parse_args() and build(). Arg problems and unknown
    timezones come back as ok=False responses; storage errors propagate.
    """

    def parse_args(self, args: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        return {}, []

    @abstractmethod
    def build(self, engine: AggregationEngine, snapshot: LedgerSnapshot, request: ToolRequest, params: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def run(self, request: ToolRequest) -> ToolResponse:
        args = request.args if isinstance(request.args, dict) else {}
        params, errors = self.parse_args(args)
        try:
            engine = build_engine(request)
        except ValueError as exc:
            errors.append(str(exc))
        if errors:
            logger.info("Tool rejected args tool=%s errors=%s", self.name, errors)
            return self.fail(request, errors)

        snapshot = load_snapshot()
        result = self.build(engine, snapshot, request, params)
        result.setdefault("timezone", engine.timezone_name)
        return self.ok(request, result)
