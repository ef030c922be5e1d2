"""Flow domain models."""

from wayfarer.flow.models.agent import AgentDefinition
from wayfarer.flow.models.guideline import Guideline, Term
from wayfarer.flow.models.hooks import (
    CallableHook,
    HookRef,
    NamedToolHook,
    ToolHook,
    to_hook_ref,
)
from wayfarer.flow.models.route import Route, generate_route_id
from wayfarer.flow.models.schema import StructuredSchema
from wayfarer.flow.models.step import (
    END_ROUTE,
    END_ROUTE_ID,
    ConditionContext,
    SkipPredicate,
    Step,
    generate_step_id,
    is_present,
)

__all__ = [
    "AgentDefinition",
    "CallableHook",
    "ConditionContext",
    "END_ROUTE",
    "END_ROUTE_ID",
    "Guideline",
    "HookRef",
    "NamedToolHook",
    "Route",
    "SkipPredicate",
    "Step",
    "StructuredSchema",
    "Term",
    "ToolHook",
    "generate_route_id",
    "generate_step_id",
    "is_present",
    "to_hook_ref",
]
