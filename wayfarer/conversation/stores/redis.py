"""Redis implementation of SessionStore."""

import pydantic
import redis.asyncio as redis

from wayfarer.config.models.storage import SessionStorageConfig
from wayfarer.conversation.errors import SerializationError, StoreConnectionError
from wayfarer.conversation.models import SessionState
from wayfarer.conversation.store import SessionStore
from wayfarer.observability.logging import get_logger

logger = get_logger(__name__)


class RedisSessionStore(SessionStore):
    """Redis implementation of SessionStore.

    Each session is one JSON string under ``{key_prefix}:{session_id}``,
    written with the configured TTL.
    """

    def __init__(
        self,
        client: redis.Redis,
        config: SessionStorageConfig | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: Redis client instance
            config: Session storage configuration (uses defaults if not provided)
        """
        self._client = client
        self._config = config or SessionStorageConfig(backend="redis")
        self._prefix = self._config.key_prefix

    @classmethod
    def from_config(cls, config: SessionStorageConfig) -> "RedisSessionStore":
        client = redis.Redis.from_url(config.redis_url, decode_responses=True)
        return cls(client, config)

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    def _serialize_session(self, session: SessionState) -> str:
        try:
            return session.model_dump_json()
        except ValueError as e:
            # PydanticSerializationError is a ValueError
            logger.error("session_encode_error", session_id=session.session_id, error=str(e))
            raise SerializationError(
                f"Session '{session.session_id}' cannot be serialized", cause=e
            ) from e

    def _deserialize_session(self, session_id: str, data: str | bytes) -> SessionState:
        try:
            return SessionState.model_validate_json(data)
        except pydantic.ValidationError as e:
            logger.error("session_decode_error", session_id=session_id, error=str(e))
            raise SerializationError(
                f"Stored session '{session_id}' is not valid", cause=e
            ) from e

    async def get(self, session_id: str) -> SessionState | None:
        try:
            data = await self._client.get(self._key(session_id))
        except redis.RedisError as e:
            logger.error("redis_get_error", session_id=session_id, error=str(e))
            raise StoreConnectionError(f"Failed to get session: {e}", cause=e) from e

        if data is None:
            logger.debug("session_not_found", session_id=session_id)
            return None
        return self._deserialize_session(session_id, data)

    async def save(self, session: SessionState) -> str:
        payload = self._serialize_session(session)
        try:
            await self._client.set(
                self._key(session.session_id),
                payload,
                ex=self._config.ttl_seconds,
            )
        except redis.RedisError as e:
            logger.error(
                "session_save_error",
                session_id=session.session_id,
                error=str(e),
            )
            raise StoreConnectionError(f"Failed to save session: {e}", cause=e) from e

        logger.debug("session_saved", session_id=session.session_id)
        return session.session_id

    async def delete(self, session_id: str) -> bool:
        try:
            deleted = await self._client.delete(self._key(session_id))
        except redis.RedisError as e:
            logger.error("session_delete_error", session_id=session_id, error=str(e))
            raise StoreConnectionError(f"Failed to delete session: {e}", cause=e) from e

        logger.debug("session_deleted", session_id=session_id, deleted=bool(deleted))
        return bool(deleted)

    async def exists(self, session_id: str) -> bool:
        try:
            return bool(await self._client.exists(self._key(session_id)))
        except redis.RedisError as e:
            logger.error("session_exists_error", session_id=session_id, error=str(e))
            raise StoreConnectionError(f"Failed to check session: {e}", cause=e) from e
