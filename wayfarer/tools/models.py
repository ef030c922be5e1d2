"""Tool models."""

import hashlib
import re
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def generate_tool_id(name: str) -> str:
    """Deterministic tool id derived from the tool name."""
    digest = hashlib.sha1(name.encode("utf-8")).hexdigest()[:8]
    return f"tool_{_NON_ALNUM.sub('_', name.lower()).strip('_')}_{digest}"


class ToolContext(BaseModel):
    """What a tool handler sees when it runs."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    context: Any = Field(default=None, description="Caller-supplied agent context")
    data: dict[str, Any] = Field(
        default_factory=dict, description="Snapshot of the session data"
    )
    session_id: str | None = None
    route_id: str | None = None
    step_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Outcome of executing a tool."""

    tool_id: str
    success: bool
    output: Any = None
    error: str | None = None
    execution_time_ms: float = Field(default=0.0, ge=0)
    timeout: bool = False


class Tool(BaseModel):
    """A named handler.

    The handler is called as ``handler(tool_context, **arguments)`` and may be
    sync or async. It may return a ``ToolResult`` to report failure without
    raising; any other return value becomes the result output.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default="", description="Unique tool id; derived from name if empty")
    name: str = Field(..., min_length=1)
    description: str | None = None
    parameters: dict[str, Any] | None = Field(
        default=None, description="JSON schema of the handler arguments"
    )
    handler: Callable[..., Any] = Field(..., exclude=True)

    @model_validator(mode="after")
    def _default_id(self) -> "Tool":
        if not self.id:
            self.id = generate_tool_id(self.name)
        return self

    def matches(self, reference: str) -> bool:
        return reference in (self.id, self.name)
