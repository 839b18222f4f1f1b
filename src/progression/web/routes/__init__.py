"""Route handlers for the Web API."""

from progression.web.routes.health import router as health_router
from progression.web.routes.progression import router as progression_router

__all__ = [
    "health_router",
    "progression_router",
]
