"""Route model: a titled graph of steps."""

import hashlib
import inspect
import re
from collections import deque
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from wayfarer.errors import StepNotFoundError
from wayfarer.flow.models.guideline import Guideline, Term
from wayfarer.flow.models.step import END_ROUTE, END_ROUTE_ID, Step, is_present
from wayfarer.tools.models import Tool

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def generate_route_id(title: str) -> str:
    """Deterministic route id derived from the title."""
    digest = hashlib.sha1(title.encode("utf-8")).hexdigest()[:8]
    return f"route_{_NON_ALNUM.sub('_', title.lower()).strip('_')}_{digest}"


class Route(BaseModel):
    """A conversation flow.

    Steps are kept in an arena keyed by id. ``transitions`` maps a step id to
    its ordered successor ids; a step without an entry ends the route. The
    ``END_ROUTE`` id is an explicit end-of-route marker and is added to the
    arena automatically when a transition targets it.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default="", description="Route id; derived from title if empty")
    title: str = Field(..., min_length=1)
    description: str | None = None
    required_fields: tuple[str, ...] = Field(
        default=(), description="Fields that must be collected to complete the route"
    )
    optional_fields: tuple[str, ...] = Field(
        default=(), description="Fields the route may collect"
    )
    initial_step_id: str
    steps: dict[str, Step]
    transitions: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    guidelines: list[Guideline] = Field(default_factory=list)
    terms: list[Term] = Field(default_factory=list)
    tools: list[Tool] = Field(default_factory=list)
    on_complete: str | Callable[..., Any] | None = Field(
        default=None,
        description=(
            "Route id or title to enter after this route completes, or a "
            "callable (data, context) returning one"
        ),
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        if not values.get("id") and values.get("title"):
            values["id"] = generate_route_id(values["title"])

        steps = values.get("steps")
        if isinstance(steps, (list, tuple)):
            arena: dict[str, Step] = {}
            for step in steps:
                if not isinstance(step, Step):
                    step = Step.model_validate(step)
                if step.id in arena:
                    raise ValueError(f"Duplicate step id '{step.id}'")
                arena[step.id] = step
            values["steps"] = arena
        return values

    @model_validator(mode="after")
    def _validate_graph(self) -> "Route":
        for key, step in self.steps.items():
            if key != step.id:
                raise ValueError(f"Step stored under '{key}' has id '{step.id}'")

        targets = {t for successors in self.transitions.values() for t in successors}
        if END_ROUTE_ID in targets and END_ROUTE_ID not in self.steps:
            self.steps[END_ROUTE_ID] = END_ROUTE

        if self.initial_step_id not in self.steps:
            raise ValueError(f"Initial step '{self.initial_step_id}' is not in the route")
        if self.initial_step_id == END_ROUTE_ID:
            raise ValueError("Initial step cannot be the end-of-route marker")

        for source, successors in self.transitions.items():
            if source not in self.steps:
                raise ValueError(f"Transition source '{source}' is not in the route")
            if source == END_ROUTE_ID and successors:
                raise ValueError("The end-of-route marker cannot have transitions")
            for target in successors:
                if target not in self.steps:
                    raise ValueError(
                        f"Transition target '{target}' from '{source}' is not in the route"
                    )
        return self

    @classmethod
    def linear(
        cls,
        title: str,
        steps: Sequence[Step],
        **kwargs: Any,
    ) -> "Route":
        """Build a route that runs ``steps`` in order and then ends."""
        if not steps:
            raise ValueError("A linear route needs at least one step")
        ids = [step.id for step in steps] + [END_ROUTE_ID]
        transitions = {source: (target,) for source, target in zip(ids, ids[1:])}
        return cls(
            title=title,
            initial_step_id=steps[0].id,
            steps=list(steps),
            transitions=transitions,
            **kwargs,
        )

    @property
    def initial_step(self) -> Step:
        return self.steps[self.initial_step_id]

    def has_step(self, step_id: str) -> bool:
        return step_id in self.steps

    def get_step(self, step_id: str) -> Step:
        step = self.steps.get(step_id)
        if step is None:
            raise StepNotFoundError(self.id, step_id)
        return step

    def next_step_ids(self, step_id: str) -> list[str]:
        return list(self.transitions.get(step_id, ()))

    def all_steps(self) -> list[Step]:
        """Steps reachable from the initial step, breadth-first.

        The end-of-route marker is not included.
        """
        seen: set[str] = set()
        ordered: list[Step] = []
        queue = deque([self.initial_step_id])
        while queue:
            step_id = queue.popleft()
            if step_id in seen or step_id == END_ROUTE_ID:
                continue
            seen.add(step_id)
            ordered.append(self.steps[step_id])
            queue.extend(self.transitions.get(step_id, ()))
        return ordered

    def missing_required_fields(self, data: Mapping[str, Any]) -> list[str]:
        return [f for f in self.required_fields if not is_present(data, f)]

    def is_complete(self, data: Mapping[str, Any]) -> bool:
        """True when every required field of the route is present."""
        return not self.missing_required_fields(data)

    async def evaluate_on_complete(
        self,
        data: Mapping[str, Any],
        context: Any = None,
    ) -> str | None:
        """Resolve the route to move to once this one completes.

        Exceptions raised by a callable propagate to the caller.
        """
        if self.on_complete is None or isinstance(self.on_complete, str):
            return self.on_complete
        target = self.on_complete(dict(data), context)
        if inspect.isawaitable(target):
            target = await target
        return target or None

    def add_guideline(self, guideline: Guideline) -> None:
        self.guidelines.append(guideline)

    def add_term(self, term: Term) -> None:
        self.terms.append(term)

    def add_tool(self, tool: Tool) -> None:
        self.tools.append(tool)

    def add_tools(self, tools: Iterable[Tool]) -> None:
        self.tools.extend(tools)

    def describe(self) -> str:
        """Multi-line description of the route for debugging."""
        lines = [
            f"Route: {self.title}",
            f"ID: {self.id}",
            f"Description: {self.description or 'N/A'}",
            f"Required fields: {', '.join(self.required_fields) or 'None'}",
            "",
            "Steps:",
        ]
        for step in self.all_steps():
            summary = f": {step.description}" if step.description else ""
            lines.append(f"  - {step.id}{summary}")
            for target in self.transitions.get(step.id, ()):
                lines.append(f"    -> {target}")
        return "\n".join(lines)
