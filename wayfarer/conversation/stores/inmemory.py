"""In-memory implementation of SessionStore."""

from wayfarer.conversation.models import SessionState
from wayfarer.conversation.store import SessionStore


class InMemorySessionStore(SessionStore):
    """In-memory implementation of SessionStore for testing and development.

    Sessions are immutable values, so they are stored by reference.
    Not suitable for production use.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}

    async def get(self, session_id: str) -> SessionState | None:
        return self._sessions.get(session_id)

    async def save(self, session: SessionState) -> str:
        self._sessions[session.session_id] = session
        return session.session_id

    async def delete(self, session_id: str) -> bool:
        if session_id in self._sessions:
            del self._sessions[session_id]
            return True
        return False

    async def exists(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
