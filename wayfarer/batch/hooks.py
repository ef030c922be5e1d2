"""Lifecycle hook resolution and execution.

``HookDispatcher`` is the single place where a hook reference is turned into
something callable and invoked with ``(context, data, step)``.
``HookExecutor`` runs the prepare and finalize phases over a batch through
any callback with that contract.
"""

import copy
import inspect
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from wayfarer.batch.models import (
    BatchErrorType,
    BatchExecutionError,
    HookCallback,
    HookPhaseResult,
)
from wayfarer.errors import HookExecutionError, ToolNotFoundError
from wayfarer.flow.models import (
    CallableHook,
    HookRef,
    NamedToolHook,
    Route,
    Step,
    ToolHook,
)
from wayfarer.observability import metrics
from wayfarer.observability.logging import get_logger
from wayfarer.tools.executor import ToolExecutor
from wayfarer.tools.models import Tool, ToolContext
from wayfarer.tools.registry import ToolRegistry

logger = get_logger(__name__)


class HookDispatcher:
    """Resolves hook references and invokes them.

    Named references are looked up among the step's tools, then the route's,
    then the agent-level registry. A name that resolves to nothing is logged
    and the hook is skipped, unless the dispatcher is strict, in which case
    ``ToolNotFoundError`` is raised. A tool that reports failure raises
    ``HookExecutionError``.
    """

    def __init__(
        self,
        registry: ToolRegistry | None = None,
        tool_executor: ToolExecutor | None = None,
        strict: bool = False,
    ) -> None:
        self._registry = registry or ToolRegistry()
        self._tool_executor = tool_executor or ToolExecutor()
        self._strict = strict

    def resolve(
        self,
        hook: HookRef,
        step: Step | None = None,
        route: Route | None = None,
    ) -> Callable[..., Any] | Tool | None:
        if isinstance(hook, CallableHook):
            return hook.func
        if isinstance(hook, ToolHook):
            return hook.tool
        if isinstance(hook, NamedToolHook):
            return self._registry.find(
                hook.reference,
                step_tools=step.tools if step else (),
                route_tools=route.tools if route else (),
            )
        raise TypeError(f"Unknown hook reference: {hook!r}")

    async def invoke(
        self,
        hook: HookRef,
        context: Any,
        data: dict[str, Any],
        step: Step,
        *,
        route: Route | None = None,
        session_id: str | None = None,
    ) -> None:
        target = self.resolve(hook, step, route)
        if target is None:
            if self._strict:
                raise ToolNotFoundError(hook.label)
            logger.warning(
                "hook_tool_not_found",
                reference=hook.label,
                step_id=step.id,
                route_id=route.id if route else None,
            )
            return

        if isinstance(target, Tool):
            await self._invoke_tool(target, hook, context, data, step, route, session_id)
            return

        result = target(context, data, step)
        if inspect.isawaitable(result):
            await result

    async def _invoke_tool(
        self,
        tool: Tool,
        hook: HookRef,
        context: Any,
        data: dict[str, Any],
        step: Step,
        route: Route | None,
        session_id: str | None,
    ) -> None:
        tool_context = ToolContext(
            context=context,
            data=data,
            session_id=session_id,
            route_id=route.id if route else None,
            step_id=step.id,
        )
        result = await self._tool_executor.execute(tool, tool_context)
        if not result.success:
            raise HookExecutionError(
                f"Tool execution failed: {result.error}",
                hook=hook.label,
                step_id=step.id,
            )

    def as_callback(
        self,
        route: Route | None = None,
        session_id: str | None = None,
    ) -> HookCallback:
        """Bind route and session so the dispatcher fits the executor callback."""

        async def execute_hook(
            hook: HookRef, context: Any, data: dict[str, Any], step: Step
        ) -> None:
            await self.invoke(
                hook, context, data, step, route=route, session_id=session_id
            )

        return execute_hook


class HookExecutor:
    """Runs prepare and finalize hooks over a batch, strictly in batch order."""

    async def execute_prepare_hooks(
        self,
        steps: Sequence[Step],
        context: Any,
        data: Mapping[str, Any],
        execute_hook: HookCallback,
    ) -> HookPhaseResult:
        """Run every prepare hook; the first failure aborts the phase."""
        executed: list[str] = []
        snapshot = copy.deepcopy(dict(data))

        for step in steps:
            if step.prepare is None:
                continue
            try:
                await execute_hook(step.prepare, context, snapshot, step)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "prepare_hook_failed",
                    step_id=step.id,
                    hook=step.prepare.label,
                    error=str(exc),
                    executed_steps=executed,
                )
                metrics.record_hook_failure("prepare")
                return HookPhaseResult(
                    success=False,
                    executed_steps=executed,
                    error=BatchExecutionError(
                        type=BatchErrorType.PREPARE_HOOK,
                        message=str(exc) or type(exc).__name__,
                        step_id=step.id,
                        details=exc,
                    ),
                )
            executed.append(step.id)

        return HookPhaseResult(success=True, executed_steps=executed)

    async def execute_finalize_hooks(
        self,
        steps: Sequence[Step],
        context: Any,
        data: Mapping[str, Any],
        execute_hook: HookCallback,
    ) -> HookPhaseResult:
        """Run every finalize hook; failures are collected and the phase goes on."""
        executed: list[str] = []
        errors: list[BatchExecutionError] = []
        snapshot = copy.deepcopy(dict(data))

        for step in steps:
            if step.finalize is None:
                continue
            try:
                await execute_hook(step.finalize, context, snapshot, step)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "finalize_hook_failed",
                    step_id=step.id,
                    hook=step.finalize.label,
                    error=str(exc),
                )
                errors.append(
                    BatchExecutionError(
                        type=BatchErrorType.FINALIZE_HOOK,
                        message=str(exc) or type(exc).__name__,
                        step_id=step.id,
                        details=exc,
                    )
                )
                continue
            executed.append(step.id)

        if errors:
            metrics.record_hook_failure("finalize", len(errors))
            logger.warning("finalize_hooks_partially_failed", failed=len(errors))
        return HookPhaseResult(success=True, executed_steps=executed, errors=errors)


async def invoke_hook_directly(
    hook: HookRef,
    context: Any,
    data: dict[str, Any],
    step: Step,
) -> None:
    """Default hook callback: runs callables and tool instances.

    Named references resolve against the step's own tools only.
    """
    await _DEFAULT_DISPATCHER.invoke(hook, context, data, step)


_DEFAULT_DISPATCHER = HookDispatcher()
