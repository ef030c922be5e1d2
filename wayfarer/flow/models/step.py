"""Step model: a single node of a route's step graph."""

import hashlib
import inspect
import re
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from wayfarer.flow.models.hooks import HookRef, to_hook_ref
from wayfarer.tools.models import Tool

END_ROUTE_ID = "END_ROUTE"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def is_present(data: Mapping[str, Any], field: str) -> bool:
    """A field is present when its key exists and its value is not None.

    Falsy values such as 0, False, "" and [] count as present.
    """
    return data.get(field) is not None


def generate_step_id(description: str) -> str:
    digest = hashlib.sha1(description.encode("utf-8")).hexdigest()[:8]
    return f"step_{_NON_ALNUM.sub('_', description.lower()).strip('_')}_{digest}"


class ConditionContext(BaseModel):
    """Snapshot passed to a step's skip predicate.

    ``data`` is a deep copy of the session data; mutating it has no effect
    on the session.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    context: Any = None
    data: dict[str, Any] = Field(default_factory=dict)

    def get(self, field: str, default: Any = None) -> Any:
        value = self.data.get(field)
        return default if value is None else value

    def has(self, field: str) -> bool:
        return is_present(self.data, field)


SkipPredicate = Callable[[ConditionContext], bool | Awaitable[bool]]


class Step(BaseModel):
    """A conversation step.

    ``requires`` lists fields that must all be present before the step may
    run; ``collect`` lists fields the step asks the model to extract. A step
    is immutable once its route is built.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., min_length=1, description="Unique id within the route")
    description: str | None = Field(default=None, description="Human-readable summary")
    prompt: str | None = Field(default=None, description="Instructions for the model")
    collect: tuple[str, ...] = Field(default=(), description="Fields this step extracts")
    requires: tuple[str, ...] = Field(
        default=(), description="Fields that must be present to enter"
    )
    skip_if: SkipPredicate | None = Field(
        default=None, description="Predicate deciding whether to bypass the step"
    )
    prepare: HookRef | None = Field(default=None, description="Hook run before generation")
    finalize: HookRef | None = Field(default=None, description="Hook run after collection")
    tools: tuple[Tool, ...] = Field(default=(), description="Step-scoped tools")

    @model_validator(mode="before")
    @classmethod
    def _default_id(cls, values: Any) -> Any:
        if isinstance(values, dict) and not values.get("id"):
            description = values.get("description") or values.get("prompt")
            if not description:
                raise ValueError("Step needs an id, a description or a prompt")
            values = {**values, "id": generate_step_id(description)}
        return values

    @field_validator("prepare", "finalize", mode="before")
    @classmethod
    def _normalize_hook(cls, value: Any) -> Any:
        return to_hook_ref(value)

    @field_validator("collect", "requires")
    @classmethod
    def _dedupe_fields(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(value))

    @property
    def is_end_route(self) -> bool:
        return self.id == END_ROUTE_ID

    @property
    def hooks(self) -> dict[str, Any]:
        return {"prepare": self.prepare, "finalize": self.finalize}

    async def should_skip(self, condition: ConditionContext) -> bool:
        """Evaluate the skip predicate.

        Exceptions raised by the predicate propagate to the caller.
        """
        if self.skip_if is None:
            return False
        result = self.skip_if(condition)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)


END_ROUTE = Step(id=END_ROUTE_ID, description="End of route")
