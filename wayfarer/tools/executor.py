"""Tool execution with timeout handling."""

import asyncio
import inspect
import time
from typing import Any

from wayfarer.observability.logging import get_logger
from wayfarer.tools.models import Tool, ToolContext, ToolResult

logger = get_logger(__name__)


class ToolExecutor:
    """Run a single tool and turn its outcome into a ToolResult.

    Handler exceptions and timeouts are reported as unsuccessful results;
    callers decide whether that is fatal.
    """

    def __init__(self, timeout_ms: int | None = None) -> None:
        self._timeout_ms = timeout_ms

    async def execute(
        self,
        tool: Tool,
        context: ToolContext,
        **arguments: Any,
    ) -> ToolResult:
        start_time = time.perf_counter()
        try:
            output = await self._run_with_timeout(tool, context, arguments)
        except TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning("tool_timeout", tool_id=tool.id, elapsed_ms=elapsed_ms)
            return ToolResult(
                tool_id=tool.id,
                success=False,
                error="timeout",
                execution_time_ms=elapsed_ms,
                timeout=True,
            )
        except Exception as exc:  # noqa: BLE001
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning("tool_failed", tool_id=tool.id, error=str(exc))
            return ToolResult(
                tool_id=tool.id,
                success=False,
                error=str(exc),
                execution_time_ms=elapsed_ms,
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if isinstance(output, ToolResult):
            return output.model_copy(
                update={"tool_id": tool.id, "execution_time_ms": elapsed_ms}
            )
        return ToolResult(
            tool_id=tool.id,
            success=True,
            output=output,
            execution_time_ms=elapsed_ms,
        )

    async def _run_with_timeout(
        self,
        tool: Tool,
        context: ToolContext,
        arguments: dict[str, Any],
    ) -> Any:
        result = tool.handler(context, **arguments)
        if not inspect.isawaitable(result):
            return result
        if self._timeout_ms is None:
            return await result
        return await asyncio.wait_for(result, timeout=self._timeout_ms / 1000)
