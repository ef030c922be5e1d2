"""Turn result model."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from wayfarer.batch.models import (
    BatchExecutionError,
    BatchTiming,
    StepRef,
    StoppedReason,
    ValidationError,
)
from wayfarer.conversation.models import SessionState, utc_now


class TurnResult(BaseModel):
    """Complete result of processing one user message.

    ``session`` is the state after the turn; for fatal outcomes
    (``prepare_error``, ``llm_error``) it is the session as it was before
    the turn.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Identifiers
    turn_id: str = Field(default_factory=lambda: uuid4().hex)
    session_id: str
    route_id: str | None = None

    # Input
    user_message: str

    # Outcome
    session: SessionState
    message: str = Field(default="", description="Reply for the user")
    stopped_reason: StoppedReason
    executed_steps: list[StepRef] = Field(default_factory=list)
    collected_data: dict[str, Any] = Field(default_factory=dict)
    focused: bool = Field(
        default=False,
        description="The turn ran the step that was waiting for input on its own",
    )

    # Errors
    error: BatchExecutionError | None = None
    validation_errors: list[ValidationError] = Field(default_factory=list)
    finalize_errors: list[BatchExecutionError] = Field(default_factory=list)

    # Metadata
    timing: BatchTiming = Field(default_factory=BatchTiming)
    total_time_ms: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_fatal(self) -> bool:
        return self.stopped_reason.is_fatal
