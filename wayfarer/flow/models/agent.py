"""Agent definition: identity, routes and shared knowledge."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wayfarer.errors import RouteNotFoundError
from wayfarer.flow.models.guideline import Guideline, Term
from wayfarer.flow.models.route import Route
from wayfarer.flow.models.schema import StructuredSchema
from wayfarer.tools.models import Tool
from wayfarer.tools.registry import ToolRegistry


class AgentDefinition(BaseModel):
    """Static configuration of a conversational agent."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1)
    description: str | None = None
    goal: str | None = None
    identity: str | None = Field(default=None, description="Who the agent is")
    personality: str | None = Field(default=None, description="Tone and style")
    data_schema: StructuredSchema | None = Field(
        default=None, description="Schema of the data collected across routes"
    )
    routes: list[Route] = Field(default_factory=list)
    tools: list[Tool] = Field(default_factory=list)
    guidelines: list[Guideline] = Field(default_factory=list)
    terms: list[Term] = Field(default_factory=list)
    knowledge_base: dict[str, Any] = Field(default_factory=dict)

    def get_route(self, route_id: str) -> Route:
        for route in self.routes:
            if route.id == route_id:
                return route
        raise RouteNotFoundError(route_id)

    def has_route(self, route_id: str) -> bool:
        return any(route.id == route_id for route in self.routes)

    @property
    def default_route(self) -> Route | None:
        return self.routes[0] if self.routes else None

    def add_route(self, route: Route) -> None:
        self.routes.append(route)

    def add_tool(self, tool: Tool) -> None:
        self.tools.append(tool)

    def add_guideline(self, guideline: Guideline) -> None:
        self.guidelines.append(guideline)

    def add_term(self, term: Term) -> None:
        self.terms.append(term)

    def tool_registry(self) -> ToolRegistry:
        return ToolRegistry(self.tools)
