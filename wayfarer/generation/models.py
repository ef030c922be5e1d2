"""Generation models."""

from typing import Any

from pydantic import BaseModel, Field

from wayfarer.providers.llm import LLMMessage


class BatchPrompt(BaseModel):
    """Prompt for the single generation call of a batch."""

    system_prompt: str
    messages: list[LLMMessage] = Field(
        default_factory=list, description="System prompt followed by history"
    )
    collect_fields: list[str] = Field(default_factory=list)
    step_count: int = Field(default=0, ge=0)
    response_schema: dict[str, Any] = Field(default_factory=dict)
