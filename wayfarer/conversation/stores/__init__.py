"""Session store implementations."""

from wayfarer.config.models.storage import SessionStorageConfig
from wayfarer.conversation.store import SessionStore
from wayfarer.conversation.stores.inmemory import InMemorySessionStore
from wayfarer.conversation.stores.redis import RedisSessionStore


def create_session_store(config: SessionStorageConfig) -> SessionStore:
    """Build the session store selected by configuration."""
    if config.backend == "redis":
        return RedisSessionStore.from_config(config)
    return InMemorySessionStore()


__all__ = [
    "InMemorySessionStore",
    "RedisSessionStore",
    "create_session_store",
]
