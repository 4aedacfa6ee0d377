"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes.router import api_router
from app.core.config import settings
from app.core.exceptions import DentConnectError
from app.core.logging import setup_logging
from app.db import session as db_session
from app.db.init_db import create_tables
from app.middleware.audit import AuditMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.storage import create_storage_provider

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    logger.info(f"Starting DentConnect API (env={settings.env})")

    if settings.init_db_on_startup and settings.use_database and not settings.is_prod:
        logger.info("Initializing database...")
        await create_tables()

    yield

    # Shutdown
    logger.info("Shutting down DentConnect API")
    if db_session.engine is not None:
        await db_session.engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="DentConnect API",
    description="Dental appointment marketplace with practice approval workflow",
    version="0.1.0",
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
    openapi_url="/openapi.json" if settings.is_dev else None,
    lifespan=lifespan,
)

# Storage backend for this process; tests replace it per test
app.state.storage_provider = create_storage_provider()

# Audit every API request (runs inside rate limiting so 429s are not audited)
app.add_middleware(AuditMiddleware)

# Add rate limiting middleware
app.add_middleware(RateLimitMiddleware, enabled=settings.rate_limit_enabled)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DentConnectError)
async def domain_exception_handler(request: Request, exc: DentConnectError) -> JSONResponse:
    """Map domain errors that escaped a route onto their status code."""
    if exc.status_code >= 500:
        logger.error(f"Internal error: {exc.message}")
        detail = "Internal server error" if settings.is_prod else exc.message
    else:
        detail = exc.message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed input as 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    # Don't expose internal errors in production
    if settings.is_prod:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


# Include API router
app.include_router(api_router, prefix="/api")


# Root endpoint
@app.get("/", include_in_schema=False)
async def root() -> dict:
    """Root endpoint redirect to docs."""
    return {
        "service": "DentConnect API",
        "version": "0.1.0",
        "docs": "/docs" if settings.is_dev else "Disabled in production",
    }


def run() -> None:
    """Run the API with uvicorn (handles SIGINT/SIGTERM gracefully)."""
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
