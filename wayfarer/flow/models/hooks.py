"""Lifecycle hook references.

A hook is one of three variants: a plain callable, the id or name of a tool
to be resolved at run time, or a tool instance. Raw callables, strings and
tools are normalized into these variants when a step is built.
"""

from collections.abc import Callable
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from wayfarer.tools.models import Tool


class CallableHook(BaseModel):
    """A sync or async function called as ``func(context, data, step)``."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["callable"] = "callable"
    func: Callable[..., Any]

    @property
    def label(self) -> str:
        return getattr(self.func, "__qualname__", None) or repr(self.func)


class NamedToolHook(BaseModel):
    """A tool id or name resolved against the step, route and agent tools."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["named_tool"] = "named_tool"
    reference: str = Field(..., min_length=1)

    @property
    def label(self) -> str:
        return self.reference


class ToolHook(BaseModel):
    """A tool instance invoked directly."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["tool"] = "tool"
    tool: Tool

    @property
    def label(self) -> str:
        return self.tool.id


HookRef = Annotated[
    CallableHook | NamedToolHook | ToolHook,
    Field(discriminator="kind"),
]


def to_hook_ref(value: Any) -> Any:
    """Normalize a raw hook value into a hook reference variant.

    Dicts are passed through for the discriminated union to validate.
    """
    if value is None or isinstance(value, (CallableHook, NamedToolHook, ToolHook, dict)):
        return value
    if isinstance(value, Tool):
        return ToolHook(tool=value)
    if isinstance(value, str):
        return NamedToolHook(reference=value)
    if callable(value):
        return CallableHook(func=value)
    raise TypeError(f"Unsupported hook value: {value!r}")
