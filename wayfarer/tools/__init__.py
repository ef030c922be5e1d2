"""Tools: callable units that hooks and agents can reference by id or name."""

from wayfarer.tools.executor import ToolExecutor
from wayfarer.tools.models import Tool, ToolContext, ToolResult, generate_tool_id
from wayfarer.tools.registry import ToolRegistry

__all__ = [
    "Tool",
    "ToolContext",
    "ToolExecutor",
    "ToolRegistry",
    "ToolResult",
    "generate_tool_id",
]
