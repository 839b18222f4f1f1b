"""Wire a ProgressionControlEngine to the SQLite repositories."""

from __future__ import annotations

import structlog

from progression.config.app_config import AppConfig, load_app_config
from progression.core.progression_engine import ProgressionControlEngine
from progression.db.catalog_repository import SqliteContentCatalog, SqliteEnrollmentDirectory
from progression.db.database import Database
from progression.db.progress_store import SqliteProgressStore

logger = structlog.get_logger(__name__)


def build_engine(
    config: AppConfig | None = None, initialize: bool = True
) -> ProgressionControlEngine:
    """Create an engine over the configured database.

    Args:
        config: Application config (loaded from disk when None)
        initialize: Create the schema if missing
    """
    config = config or load_app_config()
    db = Database(config.database.path, busy_timeout_ms=config.database.busy_timeout_ms)
    if initialize:
        db.initialize()

    engine = ProgressionControlEngine(
        SqliteContentCatalog(db),
        SqliteEnrollmentDirectory(db),
        SqliteProgressStore(db),
        conflict_retries=config.engine.conflict_retries,
        cache_dependents=config.engine.cache_dependents_index,
    )
    logger.debug("engine.built", db_path=str(db.path))
    return engine
