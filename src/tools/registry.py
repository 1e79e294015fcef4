from __future__ import annotations

from tools.base import Tool, ToolSpec


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> Tool:
        if name not in self._tools:
            raise KeyError(f"Tool not registered: {name}")
        return self._tools[name]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return sorted(self._tools)

    def list_specs(self) -> list[ToolSpec]:
        return [self._tools[name].spec() for name in self.names()]

    def clear(self) -> None:
        self._tools.clear()


registry = ToolRegistry()


def register_tool(tool_cls: type[Tool]) -> type[Tool]:
    registry.register(tool_cls())
    return tool_cls
