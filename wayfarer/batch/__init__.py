"""Batch execution engine.

Decides which steps of a route run together in a turn and executes them
around a single generation call.
"""

from wayfarer.batch.collector import batch_collect_fields, collect_batch_data
from wayfarer.batch.determiner import BatchDeterminer
from wayfarer.batch.events import BatchEvent, BatchEventListener, BatchEventType, EventEmitter
from wayfarer.batch.executor import BatchExecutor
from wayfarer.batch.hooks import HookDispatcher, HookExecutor, invoke_hook_directly
from wayfarer.batch.models import (
    BatchErrorType,
    BatchExecutionError,
    BatchExecutionResult,
    BatchPhase,
    BatchResult,
    BatchTiming,
    CollectBatchDataResult,
    GenerationOutput,
    HookPhaseResult,
    PhaseTiming,
    StepRef,
    StoppedReason,
    ValidationError,
)
from wayfarer.batch.needs_input import missing_required_fields, needs_input
from wayfarer.batch.validation import validate_against_schema

__all__ = [
    "BatchDeterminer",
    "BatchErrorType",
    "BatchEvent",
    "BatchEventListener",
    "BatchEventType",
    "BatchExecutionError",
    "BatchExecutionResult",
    "BatchExecutor",
    "BatchPhase",
    "BatchResult",
    "BatchTiming",
    "CollectBatchDataResult",
    "EventEmitter",
    "GenerationOutput",
    "HookDispatcher",
    "HookExecutor",
    "HookPhaseResult",
    "PhaseTiming",
    "StepRef",
    "StoppedReason",
    "ValidationError",
    "batch_collect_fields",
    "collect_batch_data",
    "invoke_hook_directly",
    "missing_required_fields",
    "needs_input",
    "validate_against_schema",
]
