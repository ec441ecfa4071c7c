"""Main FastAPI application for the concierge operations console.

This module sets up the FastAPI application with all routes, middleware,
and configuration for the operations API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.dashboard.api.dependencies import get_storage_adapter
from src.dashboard.api.middleware import setup_middleware
from src.dashboard.api.logging_config import setup_logging
from src.dashboard.api.routes import (
    catalog,
    csv_import,
    health,
    smart_update
)
from src.infrastructure.settings import APP_VERSION, settings

# Configure structured logging
setup_logging(use_json=settings.log_json, log_level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info(f"{settings.app_name} API starting up...")
    # Honour dependency overrides so the lifespan and the routes share one store
    storage = app.dependency_overrides.get(get_storage_adapter, get_storage_adapter)()
    schema_result = storage.initialize_schema()
    if not schema_result.is_success():
        logger.error(f"Schema initialization failed: {schema_result.error}")
    logger.info("API documentation available at /api/docs")
    logger.info(f"Logging level: {settings.log_level}")
    if not settings.llm_config.is_configured():
        logger.warning("OPENAI_API_KEY not configured; smart updates will fail")
    yield
    # Shutdown
    logger.info(f"{settings.app_name} API shutting down...")
    storage.close()


# Create FastAPI application
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Bulk CSV import and instruction-driven updates for care-facility reference data",
    version=APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
)

# Setup custom middleware
setup_middleware(app)

# Include routers
app.include_router(health.router)
app.include_router(csv_import.router)
app.include_router(smart_update.router)
app.include_router(catalog.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.app_name} API",
        "version": APP_VERSION,
        "docs": "/api/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.dashboard.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower()
    )
