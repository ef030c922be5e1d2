"""SessionStore abstract interface."""

from abc import ABC, abstractmethod

from wayfarer.conversation.models import SessionState


class SessionStore(ABC):
    """Abstract interface for session storage.

    Sessions are loaded and saved whole, keyed by session id.
    """

    @abstractmethod
    async def get(self, session_id: str) -> SessionState | None:
        """Get a session by ID."""
        pass

    @abstractmethod
    async def save(self, session: SessionState) -> str:
        """Save a session, returning its ID."""
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete a session."""
        pass

    @abstractmethod
    async def exists(self, session_id: str) -> bool:
        """Check whether a session is stored."""
        pass
