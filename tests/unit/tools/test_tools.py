"""Tests for tool models, registry and executor."""

import asyncio

import pytest

from wayfarer.tools import (
    Tool,
    ToolContext,
    ToolExecutor,
    ToolRegistry,
    ToolResult,
    generate_tool_id,
)


@pytest.fixture
def context() -> ToolContext:
    return ToolContext(data={"name": "Ada"}, session_id="session_1", step_id="a")


class TestTool:
    """Tests for the Tool model."""

    def test_id_from_name(self) -> None:
        """The id is derived from the name when not given."""
        tool = Tool(name="Send Email", handler=lambda ctx: None)
        assert tool.id == generate_tool_id("Send Email")
        assert tool.id.startswith("tool_send_email_")

    def test_matches_id_or_name(self) -> None:
        """References match the id or the name."""
        tool = Tool(id="t1", name="lookup", handler=lambda ctx: None)
        assert tool.matches("t1")
        assert tool.matches("lookup")
        assert not tool.matches("other")

    def test_handler_not_serialized(self) -> None:
        """The handler is excluded from dumps."""
        tool = Tool(id="t1", name="lookup", handler=lambda ctx: None)
        assert "handler" not in tool.model_dump()


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_register_and_get(self) -> None:
        """Registered tools are found by id."""
        tool = Tool(id="t1", name="lookup", handler=lambda ctx: None)
        registry = ToolRegistry()
        registry.register(tool)

        assert registry.get("t1") is tool
        assert "t1" in registry
        assert len(registry) == 1
        assert registry.list() == [tool]

    def test_find_scope_order(self) -> None:
        """find searches step tools, then route tools, then the registry."""
        agent_tool = Tool(id="agent", name="lookup", handler=lambda ctx: None)
        route_tool = Tool(id="route", name="lookup", handler=lambda ctx: None)
        registry = ToolRegistry([agent_tool])

        assert registry.find("lookup", route_tools=[route_tool]) is route_tool
        assert registry.find("lookup") is agent_tool
        assert registry.find("missing") is None


class TestToolExecutor:
    """Tests for ToolExecutor."""

    @pytest.mark.asyncio
    async def test_sync_handler(self, context: ToolContext) -> None:
        """Sync handler output becomes a successful result."""
        tool = Tool(id="t1", name="greet", handler=lambda ctx: f"Hello {ctx.data['name']}")

        result = await ToolExecutor().execute(tool, context)

        assert result.success
        assert result.output == "Hello Ada"
        assert result.tool_id == "t1"
        assert result.execution_time_ms >= 0

    @pytest.mark.asyncio
    async def test_async_handler_with_arguments(self, context: ToolContext) -> None:
        """Async handlers are awaited and receive keyword arguments."""

        async def add(ctx: ToolContext, a: int, b: int) -> int:
            return a + b

        result = await ToolExecutor().execute(Tool(name="add", handler=add), context, a=2, b=3)

        assert result.output == 5

    @pytest.mark.asyncio
    async def test_handler_exception(self, context: ToolContext) -> None:
        """Exceptions become unsuccessful results."""

        def broken(ctx: ToolContext) -> None:
            raise RuntimeError("backend down")

        result = await ToolExecutor().execute(Tool(name="broken", handler=broken), context)

        assert not result.success
        assert result.error == "backend down"

    @pytest.mark.asyncio
    async def test_timeout(self, context: ToolContext) -> None:
        """Slow async handlers time out."""

        async def slow(ctx: ToolContext) -> None:
            await asyncio.sleep(10)

        result = await ToolExecutor(timeout_ms=10).execute(
            Tool(name="slow", handler=slow), context
        )

        assert not result.success
        assert result.timeout
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_handler_returning_result(self, context: ToolContext) -> None:
        """A returned ToolResult is passed through with the tool id set."""
        tool = Tool(
            id="t1",
            name="soft",
            handler=lambda ctx: ToolResult(tool_id="", success=False, error="not allowed"),
        )

        result = await ToolExecutor().execute(tool, context)

        assert not result.success
        assert result.error == "not allowed"
        assert result.tool_id == "t1"
