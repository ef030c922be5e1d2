"""Batch engine and generation configuration models."""

from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    """Turn and batch engine behaviour."""

    max_history_messages: int = Field(
        default=20,
        ge=0,
        description="Conversation messages included in the batch prompt",
    )
    max_route_history: int = Field(
        default=50,
        ge=1,
        description="Route visits kept on a session",
    )
    emit_events: bool = Field(
        default=True,
        description="Deliver batch lifecycle events to registered listeners",
    )
    focus_needs_input_step: bool = Field(
        default=True,
        description=(
            "When the batch is empty because a step needs input, run that "
            "step alone so the model can ask for its data"
        ),
    )
    strict_hooks: bool = Field(
        default=False,
        description="Fail a hook whose named tool cannot be resolved instead of skipping it",
    )
    pre_extract_route_data: bool = Field(
        default=False,
        description=(
            "Extract route fields from the user message with a separate model "
            "call before the batch is determined"
        ),
    )


class GenerationConfig(BaseModel):
    """Parameters for the single generation call of a turn."""

    model: str = Field(default="mock/default", description="Model identifier")
    max_tokens: int = Field(default=1024, gt=0, description="Completion token limit")
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
