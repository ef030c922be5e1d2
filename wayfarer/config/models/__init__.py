"""Configuration section models."""

from wayfarer.config.models.engine import EngineConfig, GenerationConfig
from wayfarer.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from wayfarer.config.models.storage import SessionStorageConfig, StorageConfig

__all__ = [
    "EngineConfig",
    "GenerationConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "SessionStorageConfig",
    "StorageConfig",
]
