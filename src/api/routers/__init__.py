"""API routers package."""

from src.api.routers.health import router as health_router
from src.api.routers.practice import router as practice_router

__all__ = [
    "health_router",
    "practice_router",
]
