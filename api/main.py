"""
Portfolio Backend API

FastAPI application factory:
1. Builds the process-lifetime handles (database, Redis cache, invalidator,
   view recorder) in the lifespan and stores them on app.state
2. Mounts the resource routers under API_PREFIX
3. Renders every failure as {"success": false, "error": message}

Run locally:
    uvicorn api.main:app --reload
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio import __version__
from portfolio.analytics import ViewRecorder
from portfolio.cache import CacheConfig, CacheInvalidator, RedisCache
from portfolio.database import Database, utcnow
from portfolio.utils.config import Settings, get_settings
from portfolio.utils.errors import AppError

from api import analytics, blogs, projects, skills
from api import cache as cache_admin

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Log to stdout (hosting platforms treat stderr as errors)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )

    # Quiet down chatty loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _error(status_code: int, message, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return "; ".join(messages) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, exc.detail, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error(500, "Internal server error")


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    cache: Optional[RedisCache] = None,
) -> FastAPI:
    """
    Build the application.

    Injected handles are used as-is and left open on shutdown if the caller
    owns them (tests pass an in-memory database and a fake-backed cache).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_database = database is None
        db_handle = database or Database(settings.database_url, echo=settings.SQL_DEBUG)

        logger.info("Initializing database...")
        db_handle.create_all()
        if not db_handle.check_connection():
            logger.warning("Database connection check failed - continuing anyway")

        cache_handle = cache or RedisCache(
            CacheConfig(redis_url=settings.REDIS_URL, redis_password=settings.REDIS_PASSWORD)
        )
        if cache_handle.config.enabled:
            try:
                await cache_handle.initialize()
            except Exception as e:
                # Don't fail startup - every read falls through to the database
                logger.warning(f"Cache unavailable at startup, serving uncached: {e}")

        app.state.settings = settings
        app.state.database = db_handle
        app.state.cache = cache_handle
        app.state.invalidator = CacheInvalidator(cache_handle)
        app.state.recorder = ViewRecorder(db_handle)

        yield

        await cache_handle.close()
        if owns_database:
            db_handle.dispose()

    app = FastAPI(
        title="Portfolio Backend",
        description="Portfolio content API with view analytics and a Redis read-through cache",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get(f"{settings.API_PREFIX}/health")
    async def health(request: Request):
        """Liveness plus database and cache status."""
        db_connected = request.app.state.database.check_connection()
        cache_health = await request.app.state.cache.health_check()

        return {
            "status": "healthy",
            "timestamp": utcnow().isoformat(),
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "database": "connected" if db_connected else "disconnected",
            "cache": cache_health["status"],
        }

    for module in (projects, blogs, skills, analytics, cache_admin):
        app.include_router(module.router, prefix=settings.API_PREFIX)

    return app


def build_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    return create_app(settings)


app = build_app()
