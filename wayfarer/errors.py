"""Exception hierarchy for Wayfarer.

Route configuration problems are raised eagerly. Failures of hooks and of
the generation call are caught by the batch executor and reported on the
execution result instead.
"""


class WayfarerError(Exception):
    """Base class for all Wayfarer errors."""


class RouteConfigurationError(WayfarerError):
    """A route or step graph is malformed."""


class RouteCycleError(RouteConfigurationError):
    """The step walk reached a step it had already visited."""

    def __init__(self, route_id: str, step_id: str, path: list[str]) -> None:
        self.route_id = route_id
        self.step_id = step_id
        self.path = path
        super().__init__(
            f"Cycle detected in route '{route_id}': step '{step_id}' reached "
            f"again via {' -> '.join(path + [step_id])}"
        )


class StepNotFoundError(RouteConfigurationError):
    """A step id is not part of the route."""

    def __init__(self, route_id: str, step_id: str) -> None:
        self.route_id = route_id
        self.step_id = step_id
        super().__init__(f"Step '{step_id}' not found in route '{route_id}'")


class RouteNotFoundError(RouteConfigurationError):
    """A route id is not registered on the agent."""

    def __init__(self, route_id: str) -> None:
        self.route_id = route_id
        super().__init__(f"Route '{route_id}' not found")


class HookExecutionError(WayfarerError):
    """A lifecycle hook reported failure."""

    def __init__(self, message: str, hook: str | None = None, step_id: str | None = None) -> None:
        self.hook = hook
        self.step_id = step_id
        super().__init__(message)


class ToolNotFoundError(WayfarerError):
    """A tool reference could not be resolved."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"Tool '{reference}' not found")


class GenerationCancelledError(WayfarerError):
    """The generation call was cancelled before it produced a response."""

    def __init__(self, message: str = "Generation was cancelled") -> None:
        super().__init__(message)
