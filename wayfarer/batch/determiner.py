"""Batch determination: which steps can run together this turn."""

import copy
import time
from collections.abc import Mapping
from typing import Any

from wayfarer.batch.events import BatchEvent, BatchEventType, EventEmitter
from wayfarer.batch.models import BatchResult, StoppedReason
from wayfarer.batch.needs_input import missing_required_fields, needs_input
from wayfarer.errors import RouteCycleError
from wayfarer.flow.models import ConditionContext, Route, Step
from wayfarer.observability.logging import get_logger

logger = get_logger(__name__)


class BatchDeterminer:
    """Walks a route from the current step and collects runnable steps.

    For each step, in order:
    1. The end-of-route marker stops the walk with ``end_route``.
    2. A step whose skip predicate returns true is bypassed.
    3. A step that needs input stops the walk with ``needs_input``.
    4. Otherwise the step joins the batch.

    The walk follows the first transition of each step; a step without
    transitions stops it with ``route_complete``.
    """

    def __init__(self, emitter: EventEmitter | None = None) -> None:
        self._emitter = emitter or EventEmitter()

    async def determine_batch(
        self,
        route: Route,
        current_step: Step | str | None,
        session_data: Mapping[str, Any],
        context: Any = None,
    ) -> BatchResult:
        """Determine the batch for this turn.

        Args:
            route: Route to walk
            current_step: Step (or step id) to start from; None starts at
                the route's initial step
            session_data: Session data including anything extracted earlier
                in the turn
            context: Caller context passed to skip predicates

        Raises:
            StepNotFoundError: If ``current_step`` is not part of the route
            RouteCycleError: If the walk reaches a step twice
        """
        start_time = time.perf_counter()
        if current_step is None:
            start_id = route.initial_step_id
        else:
            start_id = current_step if isinstance(current_step, str) else current_step.id
        route.get_step(start_id)

        self._emit(
            BatchEventType.BATCH_START,
            step_id=start_id,
            reason=f"Starting batch determination from {start_id}",
            batch_size=0,
        )

        batch: list[Step] = []
        path: list[str] = []
        visited: set[str] = set()
        step_id: str | None = start_id

        while step_id is not None:
            if step_id in visited:
                raise RouteCycleError(route.id, step_id, path)
            visited.add(step_id)
            path.append(step_id)
            step = route.get_step(step_id)

            if step.is_end_route:
                return self._stop(
                    batch,
                    StoppedReason.END_ROUTE,
                    step,
                    "Reached END_ROUTE",
                    route,
                    start_time,
                )

            if await self._should_skip(step, session_data, context):
                self._emit(
                    BatchEventType.STEP_SKIPPED,
                    step_id=step.id,
                    reason="skip_if condition evaluated to true",
                    batch_size=len(batch),
                )
                step_id = self._first_transition(route, step)
                continue

            if needs_input(step, session_data):
                missing = missing_required_fields(step, session_data)
                return self._stop(
                    batch,
                    StoppedReason.NEEDS_INPUT,
                    step,
                    (
                        f"Step needs input - missing requires: [{', '.join(missing)}], "
                        f"collect fields: [{', '.join(step.collect)}]"
                    ),
                    route,
                    start_time,
                )

            batch.append(step)
            self._emit(
                BatchEventType.STEP_INCLUDED,
                step_id=step.id,
                reason="All requirements satisfied, no input needed",
                batch_size=len(batch),
            )
            step_id = self._first_transition(route, step)

        last_id = path[-1]
        return self._stop(
            batch,
            StoppedReason.ROUTE_COMPLETE,
            None,
            "No more transitions, route complete",
            route,
            start_time,
            event_step_id=last_id,
        )

    @staticmethod
    def _first_transition(route: Route, step: Step) -> str | None:
        successors = route.next_step_ids(step.id)
        return successors[0] if successors else None

    async def _should_skip(
        self,
        step: Step,
        session_data: Mapping[str, Any],
        context: Any,
    ) -> bool:
        """Evaluate the skip predicate; a predicate that raises means no skip."""
        if step.skip_if is None:
            return False
        condition = ConditionContext(
            context=context,
            data=copy.deepcopy(dict(session_data)),
        )
        try:
            return await step.should_skip(condition)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "skip_if_evaluation_failed",
                step_id=step.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False

    def _stop(
        self,
        batch: list[Step],
        reason: StoppedReason,
        stopped_at: Step | None,
        message: str,
        route: Route,
        start_time: float,
        event_step_id: str | None = None,
    ) -> BatchResult:
        self._emit(
            BatchEventType.BATCH_STOP,
            step_id=event_step_id or (stopped_at.id if stopped_at else None),
            reason=message,
            stopped_reason=reason,
            batch_size=len(batch),
        )
        logger.debug(
            "batch_determined",
            route_id=route.id,
            step_ids=[s.id for s in batch],
            stopped_reason=reason.value,
            stopped_at_step=stopped_at.id if stopped_at else None,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        return BatchResult(steps=batch, stopped_reason=reason, stopped_at_step=stopped_at)

    def _emit(self, event_type: BatchEventType, **details: Any) -> None:
        self._emitter.emit(BatchEvent(type=event_type, **details))
