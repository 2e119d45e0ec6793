"""
NitroAuth - Main Application Entry Point.

Centralized authentication broker: a signed-in user asks to visit a target
application, NitroAuth decides whether they may and hands the target a
short-lived token it can verify.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nitroauth import __version__
from nitroauth.config import get_settings
from nitroauth.core.exceptions import NitroAuthException
from nitroauth.core.responses import create_error_response
from nitroauth.api.v1.router import api_router
from nitroauth.services.metrics import MetricsMiddleware
from nitroauth.services.cache import get_validation_cache
from nitroauth.services.rate_limit import get_rate_limiter

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def sweep_expired_state(interval: float) -> None:
    """Periodically drop closed rate-limit windows and expired cache entries."""
    while True:
        await asyncio.sleep(interval)
        try:
            get_rate_limiter().sweep()
        except Exception:
            logger.exception("Rate-limit sweep failed")
        try:
            await get_validation_cache().purge_expired()
        except Exception:
            logger.exception("Validation cache sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")
    logger.info(f"Principal backend: {settings.PRINCIPAL_BACKEND}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    if settings.DEV_MODE and settings.is_production:
        logger.warning("DEV_MODE is ignored in production")
    else:
        logger.info(f"Dev mode (bypass session auth): {settings.DEV_MODE}")

    # Import session helpers
    from nitroauth.db.session import engine, is_using_sqlite_fallback

    # Show database status
    if is_using_sqlite_fallback():
        logger.warning("[DEV MODE] Using SQLite fallback database")
    else:
        logger.info("Database: PostgreSQL")

    # Auto-create tables for SQLite (dev mode)
    if is_using_sqlite_fallback():
        logger.info("Creating SQLite development tables...")
        from nitroauth.db.base import Base
        # Import all models to register them
        from nitroauth.models import AuditLog, Site, User  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Development database ready")

    sweeper = asyncio.create_task(sweep_expired_state(settings.RATE_LIMIT_SWEEP_INTERVAL))

    yield

    # Shutdown
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
## NitroAuth

Centralized authentication broker for independent target applications.

### Features
- **Authorization**: per-target decisions with signed one-hour redirect tokens
- **Validation**: target applications verify tokens and read current permissions
- **Administration**: roles, explicit site grants and one-time super admin setup
- **Site Registry**: registered targets with premium, standard and admin categories
- **Audit Log**: append-only record of decisions and privileged changes
    """,
    version=__version__,
    openapi_tags=[
        {"name": "auth", "description": "Authorization decisions and the signed-in principal"},
        {"name": "validate", "description": "Token validation for target applications"},
        {"name": "admin", "description": "Principal administration and audit log"},
        {"name": "sites", "description": "Site registry"},
        {"name": "health", "description": "Service health checks"},
    ],
    lifespan=lifespan,
)

# CORS middleware for cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware for request tracking
app.add_middleware(MetricsMiddleware)


@app.exception_handler(NitroAuthException)
async def nitroauth_exception_handler(request: Request, exc: NitroAuthException) -> JSONResponse:
    """
    Global exception handler for NitroAuth exceptions.
    Returns standardized error responses.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters are 400 validation_failed."""
    details = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return create_error_response(
        error="validation_failed",
        message="Request validation failed",
        status_code=400,
        details={"errors": details},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all exception handler for unexpected errors.
    Logs the full error but returns a sanitized response.
    """
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
        },
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint redirects to API documentation."""
    return {
        "name": settings.PROJECT_NAME,
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
        "api": settings.API_V1_PREFIX,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "nitroauth.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
