"""Session storage configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

SessionBackend = Literal["memory", "redis"]


class SessionStorageConfig(BaseModel):
    """Where sessions are persisted between turns."""

    backend: SessionBackend = Field(default="memory", description="Storage backend")
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    key_prefix: str = Field(default="wayfarer:session", description="Redis key prefix")
    ttl_seconds: int | None = Field(
        default=1800,
        gt=0,
        description="Expiry for stored sessions (None keeps them forever)",
    )


class StorageConfig(BaseModel):
    """Storage configuration."""

    session: SessionStorageConfig = Field(
        default_factory=SessionStorageConfig,
        description="Session store settings",
    )
