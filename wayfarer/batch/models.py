"""Batch models: batch selection, execution results, errors and timings."""

from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wayfarer.conversation.models import SessionState
from wayfarer.flow.models import Step


class StoppedReason(str, Enum):
    """Why a batch stopped.

    The first three come from batch determination; the rest are produced by
    execution when a phase fails.
    """

    NEEDS_INPUT = "needs_input"
    END_ROUTE = "end_route"
    ROUTE_COMPLETE = "route_complete"
    PREPARE_ERROR = "prepare_error"
    LLM_ERROR = "llm_error"
    VALIDATION_ERROR = "validation_error"

    @property
    def is_fatal(self) -> bool:
        return self in (StoppedReason.PREPARE_ERROR, StoppedReason.LLM_ERROR)

    @property
    def ends_route(self) -> bool:
        return self in (StoppedReason.END_ROUTE, StoppedReason.ROUTE_COMPLETE)


class BatchErrorType(str, Enum):
    PREPARE_HOOK = "prepare_hook"
    LLM_CALL = "llm_call"
    DATA_VALIDATION = "data_validation"
    FINALIZE_HOOK = "finalize_hook"


class BatchPhase(str, Enum):
    PREPARE_HOOKS = "prepare_hooks"
    LLM_CALL = "llm_call"
    DATA_COLLECTION = "data_collection"
    FINALIZE_HOOKS = "finalize_hooks"


class BatchResult(BaseModel):
    """Steps selected for one turn and where the walk stopped."""

    model_config = ConfigDict(frozen=True)

    steps: list[Step] = Field(default_factory=list)
    stopped_reason: StoppedReason
    stopped_at_step: Step | None = Field(
        default=None,
        description="Step needing input, or the end-of-route marker",
    )

    @property
    def is_empty(self) -> bool:
        return not self.steps

    @property
    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]


class ValidationError(BaseModel):
    """A collected value that does not match the schema. Never fatal."""

    model_config = ConfigDict(frozen=True)

    field: str
    value: Any = None
    message: str
    schema_path: str


class BatchExecutionError(BaseModel):
    """An error reported by batch execution.

    ``details`` holds the underlying exception, or the list of sub-errors
    for aggregated validation and finalize failures.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: BatchErrorType
    message: str
    step_id: str | None = None
    details: Any = None


class StepRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    route_id: str


class GenerationOutput(BaseModel):
    """What the generation callback returns."""

    message: str = ""
    structured: dict[str, Any] | None = None


class PhaseTiming(BaseModel):
    """Timing information for a single batch phase."""

    phase: BatchPhase
    started_at: datetime
    ended_at: datetime
    duration_ms: float = Field(ge=0)


class BatchTiming(BaseModel):
    phases: list[PhaseTiming] = Field(default_factory=list)
    total_ms: float = Field(default=0.0, ge=0)

    def phase_ms(self, phase: BatchPhase | str) -> float | None:
        for timing in self.phases:
            if timing.phase == phase:
                return timing.duration_ms
        return None


class HookPhaseResult(BaseModel):
    """Outcome of running one hook phase over a batch."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    executed_steps: list[str] = Field(
        default_factory=list, description="Ids of steps whose hook ran successfully"
    )
    error: BatchExecutionError | None = Field(
        default=None, description="Prepare failure that aborted the phase"
    )
    errors: list[BatchExecutionError] = Field(
        default_factory=list, description="Finalize failures, one per step"
    )


class CollectBatchDataResult(BaseModel):
    success: bool
    collected_data: dict[str, Any] = Field(default_factory=dict)
    session: SessionState
    fields_collected: list[str] = Field(default_factory=list)
    fields_missing: list[str] = Field(default_factory=list)
    validation_errors: list[ValidationError] = Field(default_factory=list)


class BatchExecutionResult(BaseModel):
    """Outcome of executing a batch.

    ``session`` is the input session unchanged (the same object) when the
    prepare phase or the generation call failed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    message: str = ""
    session: SessionState
    executed_steps: list[StepRef] = Field(default_factory=list)
    stopped_reason: StoppedReason
    collected_data: dict[str, Any] = Field(default_factory=dict)
    error: BatchExecutionError | None = None
    finalize_errors: list[BatchExecutionError] = Field(default_factory=list)
    validation_errors: list[ValidationError] = Field(default_factory=list)
    timing: BatchTiming = Field(default_factory=BatchTiming)


GenerateCallback = Callable[[], Awaitable[GenerationOutput]]
HookCallback = Callable[[Any, Any, dict[str, Any], Step], Awaitable[None]]
