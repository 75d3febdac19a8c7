"""
CourseHub API Server

FastAPI application for a multi-tenant course delivery platform: instructors
publish courses and lessons, students enroll and track lesson progress.
"""
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from coursehub import database
from coursehub.api.middleware import (
    CORS_HEADERS,
    SecurityHeadersMiddleware,
    content_type_guard,
    log_requests,
    preflight_guard,
    rate_limit,
)
from coursehub.api.routes import auth, courses, enrollments, lessons, progress
from coursehub.config import Settings, get_settings
from coursehub.exceptions import ConfigurationError, CourseHubError, error_payload, error_response
from coursehub.services.audit_trail import AuditTrail
from coursehub.services.rate_limiter import RateLimiter
from coursehub.services.scheduler import start_scheduler, stop_scheduler
from coursehub.services.token_service import TokenService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    404: ("NOT_FOUND", "Endpoint not found"),
    405: ("METHOD_NOT_ALLOWED", "Method not allowed"),
}
LOCATION_PREFIXES = {"body", "path", "query", "header", "cookie"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates missing tables, then runs the rate-limit sweep for the lifetime
    of the process.
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("Starting CourseHub API server...")
    await database.create_all()

    scheduler = start_scheduler(app.state.rate_limiter, settings.rate_limit_sweep_seconds)
    app.state.scheduler = scheduler
    logger.info("Background scheduler started")

    yield

    # Shutdown
    logger.info("Shutting down CourseHub API server...")
    stop_scheduler(scheduler)
    # Shutdown is applied on the next loop turn
    await asyncio.sleep(0)
    logger.info("Background scheduler stopped")
    app.state.rate_limiter.clear()
    await database.dispose_engine()
    logger.info("Database connections closed")


def _field_name(loc) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the JSON error envelope"""

    @app.exception_handler(CourseHubError)
    async def coursehub_exception_handler(request: Request, exc: CourseHubError):
        return error_response(exc)

    # Validation error handler
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report which fields failed without echoing submitted values"""
        details = [
            {"field": _field_name(error.get("loc", ())), "message": error.get("msg", "Invalid value")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_payload("VALIDATION_ERROR", "Validation failed", details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code, message = HTTP_ERROR_CODES.get(exc.status_code, ("HTTP_ERROR", str(exc.detail)))
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(code, message),
            headers=getattr(exc, "headers", None),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all uncaught exceptions"""
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_payload("INTERNAL_ERROR", "An internal server error occurred"),
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Validated settings (defaults to the environment)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level)

    database.init_engine(settings.database_url)

    app = FastAPI(
        title="CourseHub API",
        description="Multi-tenant course delivery platform",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )

    app.state.settings = settings
    app.state.rate_limiter = RateLimiter(
        settings.rate_limit_max_requests, settings.rate_limit_window_seconds
    )
    app.state.token_service = TokenService(settings.jwt_secret, settings.jwt_expire_minutes)
    app.state.audit_trail = AuditTrail()

    # Middleware is added innermost first
    app.add_middleware(BaseHTTPMiddleware, dispatch=rate_limit)
    app.add_middleware(BaseHTTPMiddleware, dispatch=content_type_guard)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[header.strip() for header in CORS_HEADERS.split(",")],
    )
    app.add_middleware(BaseHTTPMiddleware, dispatch=preflight_guard)
    app.add_middleware(BaseHTTPMiddleware, dispatch=log_requests)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness probe; no authentication required"""
        return {"status": "healthy"}

    # Include routers
    app.include_router(auth.router)
    app.include_router(courses.router)
    app.include_router(lessons.router)
    app.include_router(enrollments.router)
    app.include_router(progress.router)

    return app


def run() -> None:
    """Validate configuration and serve the API with uvicorn."""
    import uvicorn

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.critical(f"FATAL: {e}")
        sys.exit(1)

    uvicorn.run(
        "coursehub.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
