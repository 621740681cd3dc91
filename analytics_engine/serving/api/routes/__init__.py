"""
API Routes Module
"""
from .health import router as health_router, metrics_router
from .analytics import router as analytics_router

__all__ = [
    "health_router",
    "metrics_router",
    "analytics_router",
]
