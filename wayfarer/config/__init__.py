"""Configuration loading for Wayfarer.

Usage:
    from wayfarer.config import get_settings

    settings = get_settings()
    max_history = settings.engine.max_history_messages
"""

from functools import lru_cache

from wayfarer.config.loader import load_config
from wayfarer.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance.

    The TOML files are read once and cached; call
    ``get_settings.cache_clear()`` (or ``reload_settings()``) to re-read them.
    """
    set_toml_config(load_config())
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and load them again."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
