"""Tests for hook resolution and the prepare/finalize phases."""

from typing import Any

import pytest

from tests.factories import StepFactory
from wayfarer.batch.hooks import HookDispatcher, HookExecutor, invoke_hook_directly
from wayfarer.batch.models import BatchErrorType
from wayfarer.errors import HookExecutionError, ToolNotFoundError
from wayfarer.flow.models import (
    CallableHook,
    HookRef,
    NamedToolHook,
    Route,
    Step,
    ToolHook,
)
from wayfarer.tools import Tool, ToolContext, ToolRegistry, ToolResult


@pytest.fixture
def hook_executor() -> HookExecutor:
    return HookExecutor()


class TestHookDispatcherResolve:
    """Tests for resolving hook references."""

    def test_callable_resolves_to_function(self) -> None:
        """A callable hook resolves to its function."""

        def hook(context: Any, data: dict[str, Any], step: Step) -> None:
            return None

        dispatcher = HookDispatcher()
        assert dispatcher.resolve(CallableHook(func=hook)) is hook

    def test_tool_hook_resolves_to_tool(self) -> None:
        """A tool hook resolves to its tool."""
        tool = Tool(name="lookup", handler=lambda ctx: None)
        dispatcher = HookDispatcher()
        assert dispatcher.resolve(ToolHook(tool=tool)) is tool

    def test_named_tool_prefers_step_scope(self) -> None:
        """Step tools shadow route tools, which shadow agent tools."""
        agent_tool = Tool(id="agent", name="lookup", handler=lambda ctx: "agent")
        route_tool = Tool(id="route", name="lookup", handler=lambda ctx: "route")
        step_tool = Tool(id="step", name="lookup", handler=lambda ctx: "step")
        step = StepFactory.create("a", tools=(step_tool,))
        route = Route.linear("Scoped", [step], tools=[route_tool])
        dispatcher = HookDispatcher(ToolRegistry([agent_tool]))
        hook = NamedToolHook(reference="lookup")

        assert dispatcher.resolve(hook, step, route) is step_tool
        assert dispatcher.resolve(hook, StepFactory.create("b"), route) is route_tool
        assert dispatcher.resolve(hook) is agent_tool

    def test_named_tool_by_id(self) -> None:
        """Named references match tool ids as well as names."""
        tool = Tool(id="tool_42", name="lookup", handler=lambda ctx: None)
        dispatcher = HookDispatcher(ToolRegistry([tool]))
        assert dispatcher.resolve(NamedToolHook(reference="tool_42")) is tool

    def test_unknown_name_resolves_to_none(self) -> None:
        """An unknown reference resolves to nothing."""
        dispatcher = HookDispatcher()
        assert dispatcher.resolve(NamedToolHook(reference="missing")) is None


class TestHookDispatcherInvoke:
    """Tests for invoking resolved hooks."""

    @pytest.mark.asyncio
    async def test_sync_callable_receives_arguments(self) -> None:
        """Callables are called with (context, data, step)."""
        calls: list[tuple[Any, dict[str, Any], str]] = []

        def hook(context: Any, data: dict[str, Any], step: Step) -> None:
            calls.append((context, data, step.id))

        step = StepFactory.create("a")
        await HookDispatcher().invoke(CallableHook(func=hook), "ctx", {"x": 1}, step)

        assert calls == [("ctx", {"x": 1}, "a")]

    @pytest.mark.asyncio
    async def test_async_callable_is_awaited(self) -> None:
        """Async callables are awaited."""
        calls: list[str] = []

        async def hook(context: Any, data: dict[str, Any], step: Step) -> None:
            calls.append(step.id)

        await HookDispatcher().invoke(
            CallableHook(func=hook), None, {}, StepFactory.create("a")
        )

        assert calls == ["a"]

    @pytest.mark.asyncio
    async def test_tool_receives_tool_context(self) -> None:
        """Tools are run through the executor with a ToolContext."""
        seen: list[ToolContext] = []
        tool = Tool(name="record", handler=lambda ctx: seen.append(ctx))
        step = StepFactory.create("a")
        route = Route.linear("Tools", [step])

        await HookDispatcher().invoke(
            ToolHook(tool=tool),
            "ctx",
            {"name": "Ada"},
            step,
            route=route,
            session_id="session_1",
        )

        assert seen[0].context == "ctx"
        assert seen[0].data == {"name": "Ada"}
        assert seen[0].step_id == "a"
        assert seen[0].route_id == route.id
        assert seen[0].session_id == "session_1"

    @pytest.mark.asyncio
    async def test_failing_tool_raises_hook_error(self) -> None:
        """A tool whose handler raises surfaces as HookExecutionError."""

        def broken(ctx: ToolContext) -> None:
            raise RuntimeError("backend down")

        tool = Tool(name="broken", handler=broken)

        with pytest.raises(HookExecutionError) as exc_info:
            await HookDispatcher().invoke(
                ToolHook(tool=tool), None, {}, StepFactory.create("a")
            )

        assert "backend down" in str(exc_info.value)
        assert exc_info.value.step_id == "a"

    @pytest.mark.asyncio
    async def test_tool_reporting_failure_raises_hook_error(self) -> None:
        """A handler returning an unsuccessful ToolResult also fails the hook."""
        tool = Tool(
            name="soft_fail",
            handler=lambda ctx: ToolResult(tool_id="x", success=False, error="nope"),
        )

        with pytest.raises(HookExecutionError):
            await HookDispatcher().invoke(
                ToolHook(tool=tool), None, {}, StepFactory.create("a")
            )

    @pytest.mark.asyncio
    async def test_unknown_named_tool_is_skipped(self) -> None:
        """A reference that resolves to nothing is skipped without error."""
        await HookDispatcher().invoke(
            NamedToolHook(reference="missing"), None, {}, StepFactory.create("a")
        )

    @pytest.mark.asyncio
    async def test_unknown_named_tool_strict(self) -> None:
        """A strict dispatcher raises for references that resolve to nothing."""
        with pytest.raises(ToolNotFoundError) as exc_info:
            await HookDispatcher(strict=True).invoke(
                NamedToolHook(reference="missing"), None, {}, StepFactory.create("a")
            )
        assert exc_info.value.reference == "missing"

    @pytest.mark.asyncio
    async def test_callback_binds_route(self) -> None:
        """as_callback resolves named tools against the bound route."""
        seen: list[str | None] = []
        tool = Tool(name="audit", handler=lambda ctx: seen.append(ctx.route_id))
        step = StepFactory.create("a")
        route = Route.linear("Bound", [step], tools=[tool])
        callback = HookDispatcher().as_callback(route, "session_1")

        await callback(NamedToolHook(reference="audit"), None, {}, step)

        assert seen == [route.id]


class TestPrepareHooks:
    """Tests for the prepare phase."""

    @pytest.mark.asyncio
    async def test_runs_in_batch_order(self, hook_executor: HookExecutor) -> None:
        """Prepare hooks run in batch order and report executed steps."""
        order: list[str] = []

        def hook(context: Any, data: dict[str, Any], step: Step) -> None:
            order.append(step.id)

        steps = [
            StepFactory.create("a", prepare=hook),
            StepFactory.create("b"),
            StepFactory.create("c", prepare=hook),
        ]

        result = await hook_executor.execute_prepare_hooks(
            steps, None, {}, invoke_hook_directly
        )

        assert result.success
        assert order == ["a", "c"]
        assert result.executed_steps == ["a", "c"]

    @pytest.mark.asyncio
    async def test_first_failure_aborts(self, hook_executor: HookExecutor) -> None:
        """The first failing prepare hook stops the phase."""
        order: list[str] = []

        def ok(context: Any, data: dict[str, Any], step: Step) -> None:
            order.append(step.id)

        def broken(context: Any, data: dict[str, Any], step: Step) -> None:
            raise ValueError("prepare broke")

        steps = [
            StepFactory.create("a", prepare=ok),
            StepFactory.create("b", prepare=broken),
            StepFactory.create("c", prepare=ok),
        ]

        result = await hook_executor.execute_prepare_hooks(
            steps, None, {}, invoke_hook_directly
        )

        assert not result.success
        assert order == ["a"]
        assert result.executed_steps == ["a"]
        assert result.error is not None
        assert result.error.type == BatchErrorType.PREPARE_HOOK
        assert result.error.step_id == "b"
        assert result.error.message == "prepare broke"
        assert isinstance(result.error.details, ValueError)

    @pytest.mark.asyncio
    async def test_hooks_get_data_snapshot(self, hook_executor: HookExecutor) -> None:
        """Hooks mutating their data argument do not touch the caller's data."""

        def mutate(context: Any, data: dict[str, Any], step: Step) -> None:
            data["injected"] = True

        data = {"name": "Ada"}
        await hook_executor.execute_prepare_hooks(
            [StepFactory.create("a", prepare=mutate)], None, data, invoke_hook_directly
        )

        assert data == {"name": "Ada"}

    @pytest.mark.asyncio
    async def test_custom_callback(self, hook_executor: HookExecutor) -> None:
        """Any callback with the hook contract can run the phase."""
        seen: list[tuple[str, str]] = []

        async def runner(hook: HookRef, context: Any, data: dict[str, Any], step: Step) -> None:
            seen.append((hook.kind, step.id))

        steps = [StepFactory.create("a", prepare="load_profile")]

        result = await hook_executor.execute_prepare_hooks(steps, None, {}, runner)

        assert result.success
        assert seen == [("named_tool", "a")]


class TestFinalizeHooks:
    """Tests for the finalize phase."""

    @pytest.mark.asyncio
    async def test_failures_are_collected(self, hook_executor: HookExecutor) -> None:
        """Every finalize hook runs; failures are aggregated."""
        order: list[str] = []

        def ok(context: Any, data: dict[str, Any], step: Step) -> None:
            order.append(step.id)

        def broken(context: Any, data: dict[str, Any], step: Step) -> None:
            raise RuntimeError(f"{step.id} broke")

        steps = [
            StepFactory.create("a", finalize=broken),
            StepFactory.create("b", finalize=ok),
            StepFactory.create("c", finalize=broken),
        ]

        result = await hook_executor.execute_finalize_hooks(
            steps, None, {}, invoke_hook_directly
        )

        assert result.success
        assert order == ["b"]
        assert result.executed_steps == ["b"]
        assert [e.step_id for e in result.errors] == ["a", "c"]
        assert all(e.type == BatchErrorType.FINALIZE_HOOK for e in result.errors)
        assert result.errors[0].message == "a broke"

    @pytest.mark.asyncio
    async def test_no_hooks(self, hook_executor: HookExecutor) -> None:
        """A batch without finalize hooks succeeds with nothing executed."""
        result = await hook_executor.execute_finalize_hooks(
            [StepFactory.create("a")], None, {}, invoke_hook_directly
        )

        assert result.success
        assert result.executed_steps == []
        assert result.errors == []
