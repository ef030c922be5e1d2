"""Tests for RedisSessionStore with a mocked client."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from wayfarer.config.models.storage import SessionStorageConfig
from wayfarer.conversation.errors import SerializationError, StoreConnectionError
from wayfarer.conversation.models import SessionState
from wayfarer.conversation.state import create_session, enter_route
from wayfarer.conversation.stores import (
    InMemorySessionStore,
    RedisSessionStore,
    create_session_store,
)


@pytest.fixture
def client() -> MagicMock:
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.exists = AsyncMock(return_value=1)
    return mock


@pytest.fixture
def config() -> SessionStorageConfig:
    return SessionStorageConfig(backend="redis", key_prefix="test:session", ttl_seconds=60)


@pytest.fixture
def store(client: MagicMock, config: SessionStorageConfig) -> RedisSessionStore:
    return RedisSessionStore(client, config)


@pytest.fixture
def sample_session() -> SessionState:
    session = create_session("session_abc", data={"name": "Ada", "age": 36})
    return enter_route(session, "signup", "Signup")


class TestRedisSessionStore:
    """Tests for Redis key layout and serialization."""

    @pytest.mark.asyncio
    async def test_save_writes_json_with_ttl(
        self, store: RedisSessionStore, client: MagicMock, sample_session: SessionState
    ) -> None:
        """Sessions are stored as JSON under the prefixed key with the TTL."""
        session_id = await store.save(sample_session)

        assert session_id == "session_abc"
        key, payload = client.set.await_args.args
        assert key == "test:session:session_abc"
        assert client.set.await_args.kwargs == {"ex": 60}
        assert SessionState.model_validate_json(payload) == sample_session

    @pytest.mark.asyncio
    async def test_get_round_trips(
        self, store: RedisSessionStore, client: MagicMock, sample_session: SessionState
    ) -> None:
        """A stored payload is decoded back into the same session."""
        client.get.return_value = sample_session.model_dump_json()

        retrieved = await store.get("session_abc")

        client.get.assert_awaited_once_with("test:session:session_abc")
        assert retrieved == sample_session
        assert retrieved is not None
        assert retrieved.route_id == "signup"

    @pytest.mark.asyncio
    async def test_get_missing(self, store: RedisSessionStore) -> None:
        """A missing key returns None."""
        assert await store.get("session_missing") is None

    @pytest.mark.asyncio
    async def test_corrupt_payload(self, store: RedisSessionStore, client: MagicMock) -> None:
        """A payload that is not a session raises SerializationError."""
        client.get.return_value = '{"data": "not a dict"}'

        with pytest.raises(SerializationError):
            await store.get("session_abc")

    @pytest.mark.asyncio
    async def test_connection_error_wrapped(
        self, store: RedisSessionStore, client: MagicMock
    ) -> None:
        """Redis errors surface as StoreConnectionError with the cause."""
        cause = redis.ConnectionError("refused")
        client.get.side_effect = cause

        with pytest.raises(StoreConnectionError) as exc_info:
            await store.get("session_abc")

        assert exc_info.value.cause is cause

    @pytest.mark.asyncio
    async def test_save_error_wrapped(
        self, store: RedisSessionStore, client: MagicMock, sample_session: SessionState
    ) -> None:
        """Write failures surface as StoreConnectionError."""
        client.set.side_effect = redis.TimeoutError("slow")

        with pytest.raises(StoreConnectionError):
            await store.save(sample_session)

    @pytest.mark.asyncio
    async def test_unserializable_data(self, store: RedisSessionStore, client: MagicMock) -> None:
        """Data that cannot be encoded raises SerializationError and writes nothing."""
        session = create_session("session_bad", data={"blob": object()})

        with pytest.raises(SerializationError) as exc_info:
            await store.save(session)

        assert isinstance(exc_info.value.cause, ValueError)
        client.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_and_exists(self, store: RedisSessionStore, client: MagicMock) -> None:
        """delete and exists translate Redis integer replies."""
        assert await store.delete("session_abc") is True
        client.delete.assert_awaited_once_with("test:session:session_abc")

        client.exists.return_value = 0
        assert await store.exists("session_abc") is False


class TestCreateSessionStore:
    """Tests for store selection from configuration."""

    def test_memory_backend(self) -> None:
        """The default backend is in memory."""
        assert isinstance(create_session_store(SessionStorageConfig()), InMemorySessionStore)

    def test_redis_backend(self) -> None:
        """The redis backend builds a Redis store from the URL."""
        store = create_session_store(
            SessionStorageConfig(backend="redis", redis_url="redis://localhost:6379/1")
        )
        assert isinstance(store, RedisSessionStore)
