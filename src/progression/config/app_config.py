"""Application configuration loader.

Loads configuration from data/config/progression_v1.yaml, falling back to
built-in defaults when the file is absent.

Usage:
    from progression.config.app_config import load_app_config

    config = load_app_config()
    db_path = config.database.path
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/progression_v1.yaml")

# Environment override for the database location
DB_PATH_ENV = "PROGRESSION_DB_PATH"


@dataclass
class DatabaseConfig:
    """SQLite settings."""

    path: Path = Path("db/progression.db")
    busy_timeout_ms: int = 5000


@dataclass
class EngineConfig:
    """Progression engine behaviour."""

    conflict_retries: int = 1
    cache_dependents_index: bool = True


@dataclass
class AppConfig:
    """Application-wide configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "database": {
            "path": "db/progression.db",
            "busy_timeout_ms": 5000,
        },
        "engine": {
            "conflict_retries": 1,
            "cache_dependents_index": True,
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    db_data = {**defaults["database"], **(data.get("database") or {})}
    database = DatabaseConfig(
        path=Path(db_data["path"]),
        busy_timeout_ms=int(db_data["busy_timeout_ms"]),
    )

    engine_data = {**defaults["engine"], **(data.get("engine") or {})}
    engine = EngineConfig(
        conflict_retries=max(0, int(engine_data["conflict_retries"])),
        cache_dependents_index=bool(engine_data["cache_dependents_index"]),
    )

    return AppConfig(database=database, engine=engine)


def load_app_config(force_reload: bool = False, config_file: Path | None = None) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.
        config_file: Alternative YAML file (defaults to CONFIG_FILE).

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload and config_file is None:
        return _cached_config

    source = config_file or CONFIG_FILE
    data: dict[str, Any]

    if source.exists():
        logger.debug("loading_app_config", source=str(source))
        data = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    config = _parse_config(data)

    env_path = os.environ.get(DB_PATH_ENV)
    if env_path:
        config.database.path = Path(env_path)

    if config_file is None:
        _cached_config = config
    return config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
