"""TOML configuration loading.

Files are resolved relative to a config directory and layered:
``default.toml`` first, then ``{environment}.toml`` deep-merged on top.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "WAYFARER_CONFIG_DIR"
ENVIRONMENT_ENV = "WAYFARER_ENV"
DEFAULT_ENVIRONMENT = "development"

# How many parent directories to search for a config/ folder
_SEARCH_DEPTH = 5


def get_config_dir() -> Path:
    """Locate the configuration directory.

    ``WAYFARER_CONFIG_DIR`` wins when set and must exist. Otherwise the
    nearest ``config/`` folder from the working directory upwards is used.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        path = Path(override)
        if not path.exists():
            raise FileNotFoundError(f"Config directory not found: {override}")
        return path

    current = Path.cwd()
    for _ in range(_SEARCH_DEPTH):
        candidate = current / "config"
        if candidate.is_dir():
            return candidate
        current = current.parent

    return Path("config")


def get_environment() -> str:
    """Name of the active environment (``WAYFARER_ENV``)."""
    return os.environ.get(ENVIRONMENT_ENV, DEFAULT_ENVIRONMENT)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Read a TOML file into a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist
        tomllib.TOMLDecodeError: If the TOML is malformed
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with file_path.open("rb") as f:
        return tomllib.load(f)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Nested tables merge key by key; any other value in ``override``
    replaces the one in ``base``.
    """
    merged = dict(base)
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_dir: Path | None = None,
    environment: str | None = None,
) -> dict[str, Any]:
    """Load and layer the TOML configuration.

    Args:
        config_dir: Directory holding the TOML files (discovered if omitted)
        environment: Environment overlay name (``WAYFARER_ENV`` if omitted)

    Returns:
        Merged configuration dictionary
    """
    directory = config_dir or get_config_dir()
    env = environment or get_environment()

    default_path = directory / "default.toml"
    if not default_path.exists():
        raise FileNotFoundError(
            f"Default configuration file not found: {default_path}. "
            f"Create config/default.toml or set {CONFIG_DIR_ENV}."
        )

    config = load_toml(default_path)

    overlay_path = directory / f"{env}.toml"
    if overlay_path.exists():
        config = deep_merge(config, load_toml(overlay_path))

    return config
