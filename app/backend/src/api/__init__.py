"""Public API routers exposed by the FastAPI application."""

from . import health, insights, insights_router

__all__ = [
    "health",
    "insights",
    "insights_router",
]
