from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from domain.schemas import ToolRequest, ToolResponse


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_schema: dict[str, Any] = field(default_factory=dict)


class Tool(ABC):
    name: str
    description: str = ""
    args_schema: dict[str, Any] = {}

    @abstractmethod
    def run(self, request: ToolRequest) -> ToolResponse:
        raise NotImplementedError

    def spec(self) -> ToolSpec:
        return ToolSpec(name=self.name, description=self.description, args_schema=self.args_schema)

    # ---- envelopes ----
    def ok(self, request: ToolRequest, result: dict[str, Any]) -> ToolResponse:
        return ToolResponse(request_id=request.request_id, tool=self.name, result=result, context=request.context)

    def fail(self, request: ToolRequest, errors: list[str]) -> ToolResponse:
        return ToolResponse(
            request_id=request.request_id,
            tool=self.name,
            ok=False,
            errors=errors,
            context=request.context,
        )
