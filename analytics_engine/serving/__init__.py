"""
Serving Module
"""
from .cache import init_redis, close_redis, is_cache_ready, analytics_cache

__all__ = [
    "init_redis",
    "close_redis",
    "is_cache_ready",
    "analytics_cache",
]
