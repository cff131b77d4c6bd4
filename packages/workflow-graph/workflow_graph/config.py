"""Configuration for node defaults and logging."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .constants import DEFAULT_RETRY_COUNT, DEFAULT_RETRY_DELAY

CONFIG_ENV_VAR = "WORKFLOW_GRAPH_CONFIG_PATH"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_CONFIG_CACHE: Dict[str, Dict[str, Any]] = {}


def _default_config_path() -> Optional[Path]:
    """Resolve the config path from WORKFLOW_GRAPH_CONFIG_PATH, if set."""
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return None


def clear_config_cache() -> None:
    """Clear cached config (primarily for tests)."""
    _CONFIG_CACHE.clear()


def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Load YAML configuration with caching.

    Args:
        path: Optional custom path. Defaults to WORKFLOW_GRAPH_CONFIG_PATH;
            without either the configuration is empty.
    """
    resolved = Path(path).expanduser() if path else _default_config_path()
    if resolved is None:
        return {}
    key = str(resolved.resolve())
    if key not in _CONFIG_CACHE:
        with open(resolved, "r", encoding="utf-8") as f:
            _CONFIG_CACHE[key] = yaml.safe_load(f) or {}
    return _CONFIG_CACHE[key]


def _get_section(name: str, path: str | Path | None = None) -> Dict[str, Any]:
    section = load_config(path).get(name)
    return section if isinstance(section, dict) else {}


def get_node_defaults(path: str | Path | None = None) -> Dict[str, Any]:
    """Return retry defaults for nodes that do not set their own."""
    section = _get_section("defaults", path)
    return {
        "retry_count": int(section.get("retry_count", DEFAULT_RETRY_COUNT)),
        "retry_delay": float(section.get("retry_delay", DEFAULT_RETRY_DELAY)),
    }


def get_logging_settings(path: str | Path | None = None) -> Dict[str, Any]:
    """Return the logging section with level and format filled in."""
    section = _get_section("logging", path)
    return {
        "level": str(section.get("level", "WARNING")).upper(),
        "format": section.get("format", DEFAULT_LOG_FORMAT),
    }


def configure_logging(level: Optional[str] = None, path: str | Path | None = None) -> None:
    """Configure root logging from settings; *level* overrides the configured level."""
    settings = get_logging_settings(path)
    logging.basicConfig(
        level=(level or settings["level"]).upper(),
        format=settings["format"],
        force=True,
    )
