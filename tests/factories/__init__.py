"""Test factories for creating test data."""

from tests.factories.flow import AgentFactory, RouteFactory, SessionFactory, StepFactory

__all__ = [
    "AgentFactory",
    "RouteFactory",
    "SessionFactory",
    "StepFactory",
]
