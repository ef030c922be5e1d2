"""Pure update functions for SessionState.

Every function returns a new SessionState and leaves its input untouched.
"""

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from wayfarer.conversation.models import (
    ActiveRoute,
    ActiveStep,
    HistoryMessage,
    MessageRole,
    RouteVisit,
    SessionMetadata,
    SessionState,
    utc_now,
)


def _touched(session: SessionState) -> SessionMetadata:
    return session.metadata.model_copy(update={"last_updated_at": utc_now()})


def _same_value(current: Any, new: Any) -> bool:
    # 0 == False, so the type has to match too
    return type(current) is type(new) and current == new


def create_session(
    session_id: str | None = None,
    *,
    data: Mapping[str, Any] | None = None,
    attributes: Mapping[str, Any] | None = None,
) -> SessionState:
    """Create an empty session, optionally seeded with data."""
    fields: dict[str, Any] = {
        "metadata": SessionMetadata(attributes=dict(attributes or {})),
    }
    if session_id is not None:
        fields["session_id"] = session_id
    session = SessionState(**fields)
    if data:
        session = merge_data(session, data)
    return session


def merge_data(session: SessionState, patch: Mapping[str, Any]) -> SessionState:
    """Merge defined values from ``patch`` into the session data.

    ``None`` values are ignored, so a merge never removes a field. Returns
    the same object when the patch changes nothing.
    """
    updates = {
        key: copy.deepcopy(value)
        for key, value in patch.items()
        if value is not None and not _same_value(session.data.get(key), value)
    }
    if not updates:
        return session
    return session.model_copy(
        update={"data": {**session.data, **updates}, "metadata": _touched(session)}
    )


def clear_data(session: SessionState, fields: Iterable[str] | None = None) -> SessionState:
    """Remove the given fields, or all data when ``fields`` is None."""
    if fields is None:
        data: dict[str, Any] = {}
    else:
        drop = set(fields)
        data = {k: v for k, v in session.data.items() if k not in drop}
    if data == session.data:
        return session
    return session.model_copy(update={"data": data, "metadata": _touched(session)})


def _close_open_visit(
    history: tuple[RouteVisit, ...],
    route_id: str,
    *,
    completed: bool,
) -> tuple[RouteVisit, ...]:
    visits = list(history)
    for index in range(len(visits) - 1, -1, -1):
        visit = visits[index]
        if visit.route_id == route_id and visit.exited_at is None:
            visits[index] = visit.model_copy(
                update={"exited_at": utc_now(), "completed": completed}
            )
            break
    return tuple(visits)


def enter_route(
    session: SessionState,
    route_id: str,
    title: str,
    *,
    max_route_history: int | None = None,
) -> SessionState:
    """Move the session into a route.

    The previous route's open visit is closed, the step position is reset,
    any pending route is cleared and a new visit is recorded. Collected data
    is kept.
    """
    history = session.route_history
    if session.current_route is not None:
        history = _close_open_visit(history, session.current_route.id, completed=False)

    now = utc_now()
    history = history + (RouteVisit(route_id=route_id, title=title, entered_at=now),)
    if max_route_history is not None and len(history) > max_route_history:
        history = history[-max_route_history:]

    return session.model_copy(
        update={
            "current_route": ActiveRoute(id=route_id, title=title, entered_at=now),
            "current_step": None,
            "route_history": history,
            "pending_route_id": None,
            "metadata": _touched(session),
        }
    )


def enter_step(
    session: SessionState,
    step_id: str,
    description: str | None = None,
) -> SessionState:
    """Position the session at a step of its current route."""
    if session.current_step is not None and session.current_step.id == step_id:
        return session
    return session.model_copy(
        update={
            "current_step": ActiveStep(id=step_id, description=description),
            "metadata": _touched(session),
        }
    )


def complete_route(session: SessionState) -> SessionState:
    """Mark the current route as completed and leave it."""
    if session.current_route is None:
        return session
    history = _close_open_visit(
        session.route_history, session.current_route.id, completed=True
    )
    return session.model_copy(
        update={
            "current_route": None,
            "current_step": None,
            "route_history": history,
            "metadata": _touched(session),
        }
    )


def set_pending_route(session: SessionState, route_id: str | None) -> SessionState:
    """Record the route to enter on the next turn, or clear it with None."""
    if session.pending_route_id == route_id:
        return session
    return session.model_copy(
        update={"pending_route_id": route_id, "metadata": _touched(session)}
    )


def append_message(
    session: SessionState,
    role: MessageRole,
    content: str,
    *,
    max_messages: int | None = None,
) -> SessionState:
    """Append a message to the history, keeping at most ``max_messages``."""
    history = session.history + (HistoryMessage(role=role, content=content),)
    if max_messages is not None and len(history) > max_messages:
        history = history[len(history) - max_messages :]
    return session.model_copy(update={"history": history, "metadata": _touched(session)})


def completed_route_ids(session: SessionState) -> list[str]:
    return list(dict.fromkeys(v.route_id for v in session.route_history if v.completed))
