"""
FastAPI Production Application

Main entry point for the Marketplace Analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
import structlog

from analytics_engine.config import get_settings
from analytics_engine.config.logging import configure_logging
from analytics_engine.database.connection import init_database, close_database
from analytics_engine.errors import AnalyticsError
from analytics_engine.serving.cache import init_redis, close_redis
from analytics_engine.serving.api.middleware import (
    RequestLoggingMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from analytics_engine.serving.api.routes import (
    health_router,
    metrics_router,
    analytics_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    settings = get_settings()

    logger.info("Starting Marketplace Analytics API", environment=settings.app_env)

    await init_database()

    # The cache is optional; without Redis every read goes to the store
    try:
        await init_redis()
    except (RedisError, OSError) as e:
        logger.warning("Redis unavailable, response cache disabled", error=str(e))

    yield

    logger.info("Shutting down...")
    await close_redis()
    await close_database()


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    logger.info(
        "Request rejected",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "Analytics store failure",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=503,
        content={"detail": {"message": "Analytics store unavailable", "code": "StoreUnavailable"}},
    )


def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Build the application.

    Tests pass ``use_lifespan=False`` and override ``get_session_factory``
    instead of connecting to the configured database.
    """
    settings = get_settings()

    app = FastAPI(
        title="Marketplace Analytics API",
        description="Engagement tracking, business insights and platform trends for the marketplace",
        version=settings.version,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )
    # Added last so it wraps everything and binds the request id first
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(AnalyticsError, analytics_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])
    app.include_router(metrics_router)

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Marketplace Analytics API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": app.docs_url,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
