"""Conversation domain: session state, pure updates and session stores."""

from wayfarer.conversation.models import SessionState
from wayfarer.conversation.store import SessionStore

__all__ = ["SessionState", "SessionStore"]
