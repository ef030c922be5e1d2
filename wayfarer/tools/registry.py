"""Scoped tool lookup."""

from collections.abc import Iterable

from wayfarer.tools.models import Tool


class ToolRegistry:
    """Resolves tool references against step, route and agent tool sets.

    The narrowest scope wins: a step tool shadows a route tool with the same
    id or name, which in turn shadows an agent tool.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        self._tools[tool.id] = tool

    def get(self, tool_id: str) -> Tool | None:
        return self._tools.get(tool_id)

    def list(self) -> list[Tool]:
        return list(self._tools.values())

    def find(
        self,
        reference: str,
        step_tools: Iterable[Tool] = (),
        route_tools: Iterable[Tool] = (),
    ) -> Tool | None:
        """Find a tool by id or name, searching step, route, then agent tools."""
        for scope in (step_tools, route_tools, self._tools.values()):
            for tool in scope:
                if tool.matches(reference):
                    return tool
        return None

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._tools

    def __len__(self) -> int:
        return len(self._tools)
