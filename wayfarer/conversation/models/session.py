"""Session models for the conversation domain."""

from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

MessageRole = Literal["user", "assistant", "system"]


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def new_session_id() -> str:
    return f"session_{uuid4().hex}"


class ActiveRoute(BaseModel):
    """The route a session is currently in."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    entered_at: datetime = Field(default_factory=utc_now)


class ActiveStep(BaseModel):
    """The step a session is positioned at."""

    model_config = ConfigDict(frozen=True)

    id: str
    description: str | None = None
    entered_at: datetime = Field(default_factory=utc_now)


class RouteVisit(BaseModel):
    """Record of entering (and possibly leaving) a route."""

    model_config = ConfigDict(frozen=True)

    route_id: str
    title: str | None = None
    entered_at: datetime
    exited_at: datetime | None = None
    completed: bool = False


class HistoryMessage(BaseModel):
    """One conversation message."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    created_at: datetime = Field(default_factory=utc_now)


class SessionMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    created_at: datetime = Field(default_factory=utc_now, description="Creation time")
    last_updated_at: datetime = Field(default_factory=utc_now, description="Last change")
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="Caller-defined values"
    )


class SessionState(BaseModel):
    """Conversation state as an immutable value.

    ``data`` is the single record of collected fields, shared by every route
    the session has visited. Updates go through the functions in
    ``wayfarer.conversation.state``, each returning a new value, so keeping a
    reference to an earlier value is enough to roll back.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(default_factory=new_session_id, description="Unique identifier")
    current_route: ActiveRoute | None = Field(default=None, description="Active route")
    current_step: ActiveStep | None = Field(default=None, description="Current position")
    data: dict[str, Any] = Field(default_factory=dict, description="Collected data")
    history: tuple[HistoryMessage, ...] = Field(default=(), description="Messages")
    route_history: tuple[RouteVisit, ...] = Field(
        default=(), description="Routes entered, oldest first"
    )
    pending_route_id: str | None = Field(
        default=None, description="Route to enter on the next turn"
    )
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)

    @property
    def route_id(self) -> str | None:
        return self.current_route.id if self.current_route else None

    @property
    def step_id(self) -> str | None:
        return self.current_step.id if self.current_step else None
