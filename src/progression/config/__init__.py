"""Configuration package for the progression engine."""

from progression.config.app_config import (
    AppConfig,
    DatabaseConfig,
    EngineConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "EngineConfig",
    "clear_config_cache",
    "load_app_config",
]
