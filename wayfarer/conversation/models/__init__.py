"""Conversation domain models."""

from wayfarer.conversation.models.session import (
    ActiveRoute,
    ActiveStep,
    HistoryMessage,
    MessageRole,
    RouteVisit,
    SessionMetadata,
    SessionState,
    new_session_id,
    utc_now,
)

__all__ = [
    "ActiveRoute",
    "ActiveStep",
    "HistoryMessage",
    "MessageRole",
    "RouteVisit",
    "SessionMetadata",
    "SessionState",
    "new_session_id",
    "utc_now",
]
