"""Tests for InMemorySessionStore."""

import pytest

from wayfarer.conversation.models import SessionState
from wayfarer.conversation.state import create_session, merge_data
from wayfarer.conversation.stores import InMemorySessionStore


@pytest.fixture
def store() -> InMemorySessionStore:
    """Create a fresh store for each test."""
    return InMemorySessionStore()


@pytest.fixture
def sample_session() -> SessionState:
    """Create a sample session."""
    return create_session("session_abc", data={"name": "Ada"})


class TestSessionOperations:
    """Tests for session CRUD operations."""

    @pytest.mark.asyncio
    async def test_save_and_get_session(self, store, sample_session):
        """Should save and retrieve a session."""
        session_id = await store.save(sample_session)
        retrieved = await store.get(session_id)

        assert session_id == "session_abc"
        assert retrieved is not None
        assert retrieved.data == {"name": "Ada"}

    @pytest.mark.asyncio
    async def test_get_nonexistent_session(self, store):
        """Should return None for nonexistent session."""
        assert await store.get("session_missing") is None

    @pytest.mark.asyncio
    async def test_save_replaces_previous_value(self, store, sample_session):
        """Saving an updated value replaces the stored one."""
        await store.save(sample_session)
        await store.save(merge_data(sample_session, {"email": "ada@example.com"}))

        retrieved = await store.get("session_abc")

        assert retrieved is not None
        assert retrieved.data["email"] == "ada@example.com"
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_delete_session(self, store, sample_session):
        """Should delete a session."""
        await store.save(sample_session)

        assert await store.delete("session_abc") is True
        assert await store.get("session_abc") is None
        assert await store.delete("session_abc") is False

    @pytest.mark.asyncio
    async def test_exists(self, store, sample_session):
        """Should report whether a session is stored."""
        assert await store.exists("session_abc") is False
        await store.save(sample_session)
        assert await store.exists("session_abc") is True
