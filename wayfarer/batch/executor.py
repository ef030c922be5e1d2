"""Batch executor: the four phases of a turn's batch.

1. Prepare hooks (first failure aborts, no model call)
2. Exactly one generation call
3. Data collection and validation (never blocks the merge)
4. Finalize hooks (failures are aggregated, never fatal)

Hook and generation failures never escape ``execute_batch``; they are
reported on the result and the session falls back to the last checkpoint.
"""

import asyncio
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from wayfarer.batch.collector import collect_batch_data
from wayfarer.batch.determiner import BatchDeterminer
from wayfarer.batch.events import BatchEvent, BatchEventListener, BatchEventType, EventEmitter
from wayfarer.batch.hooks import HookExecutor, invoke_hook_directly
from wayfarer.batch.models import (
    BatchErrorType,
    BatchExecutionError,
    BatchExecutionResult,
    BatchPhase,
    BatchResult,
    BatchTiming,
    CollectBatchDataResult,
    GenerateCallback,
    GenerationOutput,
    HookCallback,
    HookPhaseResult,
    PhaseTiming,
    StepRef,
    StoppedReason,
)
from wayfarer.conversation.models import SessionState
from wayfarer.errors import GenerationCancelledError
from wayfarer.flow.models import Route, Step, StructuredSchema
from wayfarer.observability import metrics
from wayfarer.observability.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_ROUTE_ID = "unknown"


class _PhaseClock:
    """Measures one phase and records it on a BatchTiming."""

    def __init__(self, timing: BatchTiming, phase: BatchPhase) -> None:
        self._timing = timing
        self._phase = phase
        self._started_at = datetime.now(UTC)
        self._start = time.perf_counter()

    def stop(self) -> float:
        duration_ms = (time.perf_counter() - self._start) * 1000
        self._timing.phases.append(
            PhaseTiming(
                phase=self._phase,
                started_at=self._started_at,
                ended_at=datetime.now(UTC),
                duration_ms=duration_ms,
            )
        )
        metrics.record_phase(self._phase.value, duration_ms)
        return duration_ms


class BatchExecutor:
    """Determines and executes batches of steps.

    Lifecycle events (``batch_start``, ``step_included``, ``step_skipped``,
    ``batch_stop``, ``batch_complete``) go to listeners registered with
    ``add_event_listener``.
    """

    def __init__(
        self,
        emit_events: bool = True,
        hook_executor: HookExecutor | None = None,
    ) -> None:
        self._emitter = EventEmitter(enabled=emit_events)
        self._determiner = BatchDeterminer(self._emitter)
        self._hooks = hook_executor or HookExecutor()

    def add_event_listener(self, listener: BatchEventListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        return self._emitter.add_listener(listener)

    def remove_event_listener(self, listener: BatchEventListener) -> None:
        self._emitter.remove_listener(listener)

    async def determine_batch(
        self,
        route: Route,
        current_step: Step | str | None,
        session_data: Mapping[str, Any],
        context: Any = None,
    ) -> BatchResult:
        return await self._determiner.determine_batch(
            route, current_step, session_data, context
        )

    async def execute_prepare_hooks(
        self,
        steps: Sequence[Step],
        context: Any,
        data: Mapping[str, Any],
        execute_hook: HookCallback | None = None,
    ) -> HookPhaseResult:
        return await self._hooks.execute_prepare_hooks(
            steps, context, data, execute_hook or invoke_hook_directly
        )

    async def execute_finalize_hooks(
        self,
        steps: Sequence[Step],
        context: Any,
        data: Mapping[str, Any],
        execute_hook: HookCallback | None = None,
    ) -> HookPhaseResult:
        return await self._hooks.execute_finalize_hooks(
            steps, context, data, execute_hook or invoke_hook_directly
        )

    def collect_batch_data(
        self,
        steps: Sequence[Step],
        structured_output: Mapping[str, Any] | None,
        session: SessionState,
        schema: StructuredSchema | None = None,
    ) -> CollectBatchDataResult:
        return collect_batch_data(steps, structured_output, session, schema)

    async def execute_batch(
        self,
        batch: BatchResult,
        session: SessionState,
        context: Any,
        generate: GenerateCallback,
        execute_hook: HookCallback | None = None,
        schema: StructuredSchema | None = None,
        route_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchExecutionResult:
        """Execute a batch.

        Args:
            batch: Result of ``determine_batch``
            session: Session at the start of the batch
            context: Caller context handed to hooks
            generate: Async callback making the single generation call
            execute_hook: Hook runner; defaults to direct invocation
            schema: Schema used to validate collected data
            route_id: Route id recorded on executed step references
            cancel_event: Setting this during the generation call cancels it

        Returns:
            BatchExecutionResult; ``session`` is the input session itself
            when the prepare phase or the generation call failed
        """
        hook_runner = execute_hook or invoke_hook_directly
        route_ref = route_id or UNKNOWN_ROUTE_ID
        timing = BatchTiming()
        batch_start = time.perf_counter()

        logger.debug(
            "batch_execution_started",
            route_id=route_ref,
            step_ids=batch.step_ids,
        )

        if batch.is_empty:
            return self._complete(
                BatchExecutionResult(
                    session=session,
                    stopped_reason=batch.stopped_reason,
                ),
                timing,
                batch_start,
                batch_size=0,
                reason="Empty batch",
            )

        checkpoint = session

        # Phase 1: prepare hooks
        clock = _PhaseClock(timing, BatchPhase.PREPARE_HOOKS)
        prepare = await self._hooks.execute_prepare_hooks(
            batch.steps, context, checkpoint.data, hook_runner
        )
        clock.stop()
        if not prepare.success:
            return self._complete(
                BatchExecutionResult(
                    session=checkpoint,
                    executed_steps=[
                        StepRef(id=step_id, route_id=route_ref)
                        for step_id in prepare.executed_steps
                    ],
                    stopped_reason=StoppedReason.PREPARE_ERROR,
                    error=prepare.error,
                ),
                timing,
                batch_start,
                batch_size=len(batch.steps),
                reason=f"Prepare hook failed: {prepare.error.message if prepare.error else ''}",
            )

        # Phase 2: generation
        clock = _PhaseClock(timing, BatchPhase.LLM_CALL)
        try:
            output = await self._generate(generate, cancel_event)
        except Exception as exc:  # noqa: BLE001
            elapsed_ms = clock.stop()
            cancelled = isinstance(exc, GenerationCancelledError)
            metrics.record_llm_call("cancelled" if cancelled else "error")
            logger.error(
                "llm_call_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                elapsed_ms=elapsed_ms,
            )
            message = str(exc) or type(exc).__name__
            return self._complete(
                BatchExecutionResult(
                    session=checkpoint,
                    stopped_reason=StoppedReason.LLM_ERROR,
                    error=BatchExecutionError(
                        type=BatchErrorType.LLM_CALL,
                        message=message,
                        details=exc,
                    ),
                ),
                timing,
                batch_start,
                batch_size=len(batch.steps),
                reason=f"LLM call failed: {message}",
            )
        clock.stop()
        metrics.record_llm_call("success")

        # Phase 3: data collection
        clock = _PhaseClock(timing, BatchPhase.DATA_COLLECTION)
        collected = collect_batch_data(batch.steps, output.structured, checkpoint, schema)
        clock.stop()
        checkpoint = collected.session

        validation_error: BatchExecutionError | None = None
        if collected.validation_errors:
            validation_error = BatchExecutionError(
                type=BatchErrorType.DATA_VALIDATION,
                message=(
                    f"Validation failed for {len(collected.validation_errors)} field(s): "
                    f"{', '.join(e.field for e in collected.validation_errors)}"
                ),
                details=collected.validation_errors,
            )

        executed_steps = [StepRef(id=step.id, route_id=route_ref) for step in batch.steps]

        # Phase 4: finalize hooks
        clock = _PhaseClock(timing, BatchPhase.FINALIZE_HOOKS)
        finalize = await self._hooks.execute_finalize_hooks(
            batch.steps, context, checkpoint.data, hook_runner
        )
        clock.stop()

        stopped_reason = batch.stopped_reason
        error = None
        if validation_error is not None:
            stopped_reason = StoppedReason.VALIDATION_ERROR
            error = validation_error
        elif finalize.errors:
            error = BatchExecutionError(
                type=BatchErrorType.FINALIZE_HOOK,
                message=f"{len(finalize.errors)} finalize hook(s) failed",
                details=finalize.errors,
            )

        return self._complete(
            BatchExecutionResult(
                message=output.message,
                session=checkpoint,
                executed_steps=executed_steps,
                stopped_reason=stopped_reason,
                collected_data=collected.collected_data,
                error=error,
                finalize_errors=finalize.errors,
                validation_errors=collected.validation_errors,
            ),
            timing,
            batch_start,
            batch_size=len(executed_steps),
            reason=f"Batch completed with {len(executed_steps)} steps",
        )

    async def _generate(
        self,
        generate: GenerateCallback,
        cancel_event: asyncio.Event | None,
    ) -> GenerationOutput:
        """Run the generation callback, racing it against ``cancel_event``.

        A CancelledError raised inside the callback is surfaced as
        GenerationCancelledError; cancellation of the caller's own task
        still propagates.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelledError()

        generation = asyncio.ensure_future(generate())
        waiters: set[asyncio.Future[Any]] = {generation}
        cancel_waiter: asyncio.Future[Any] | None = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        pending: list[asyncio.Future[Any]] = []
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [future for future in waiters if not future.done()]
            for future in pending:
                future.cancel()
            # the callback finishes its cleanup before the batch returns
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if generation in pending or generation.cancelled():
            raise GenerationCancelledError()

        output = generation.result()
        if isinstance(output, GenerationOutput):
            return output
        return GenerationOutput.model_validate(output)

    def _complete(
        self,
        result: BatchExecutionResult,
        timing: BatchTiming,
        batch_start: float,
        *,
        batch_size: int,
        reason: str,
    ) -> BatchExecutionResult:
        timing.total_ms = (time.perf_counter() - batch_start) * 1000
        result.timing = timing

        self._emitter.emit(
            BatchEvent(
                type=BatchEventType.BATCH_COMPLETE,
                batch_size=batch_size,
                stopped_reason=result.stopped_reason,
                reason=reason,
                timing=timing,
            )
        )
        metrics.record_batch(result.stopped_reason.value, batch_size)

        log = logger.warning if result.error is not None else logger.info
        log(
            "batch_executed",
            stopped_reason=result.stopped_reason.value,
            executed_steps=[ref.id for ref in result.executed_steps],
            collected_fields=list(result.collected_data),
            error_type=result.error.type.value if result.error else None,
            total_ms=timing.total_ms,
        )
        return result
