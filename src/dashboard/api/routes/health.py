"""Health check endpoint for the operations API."""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from src.adapters.storage import DuckDBAdapter, PostgreSQLAdapter
from src.dashboard.api.dependencies import StorageDep
from src.dashboard.models.health import DatabaseHealth, HealthResponse, LanguageModelHealth
from src.domain.ports import StoragePort
from src.infrastructure.settings import APP_VERSION, settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


def _database_type(storage: StoragePort) -> str:
    if isinstance(storage, DuckDBAdapter):
        return "duckdb"
    if isinstance(storage, PostgreSQLAdapter):
        return "postgresql"
    return "unknown"


async def check_database_health(storage: StoragePort) -> DatabaseHealth:
    """Check database connection health.

    Parameters:
        storage: Storage adapter instance

    Returns:
        DatabaseHealth: Database health status
    """
    db_type = _database_type(storage)
    start_time = time.time()

    result = storage.query("SELECT 1")
    if not result.is_success():
        logger.warning(f"Database query failed: {result.error}")
        return DatabaseHealth(status="disconnected", type=db_type, response_time_ms=None)

    response_time = (time.time() - start_time) * 1000
    return DatabaseHealth(
        status="connected",
        type=db_type,
        response_time_ms=round(response_time, 2)
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(storage: StorageDep) -> HealthResponse:
    """Health check endpoint.

    The database must answer for the service to be healthy; a missing
    OpenAI key only degrades it (imports still work, smart updates do not).

    Parameters:
        storage: Storage adapter (injected via dependency)

    Returns:
        HealthResponse: System health status
    """
    try:
        db_health = await check_database_health(storage)
        llm_config = settings.llm_config
        llm_health = LanguageModelHealth(configured=llm_config.is_configured(), model=llm_config.model)

        if db_health.status == "disconnected":
            overall_status = "unhealthy"
        elif not llm_health.configured:
            overall_status = "degraded"
        else:
            overall_status = "healthy"

        return HealthResponse(
            status=overall_status,
            timestamp=datetime.now(timezone.utc),
            version=APP_VERSION,
            database=db_health,
            language_model=llm_health
        )

    except Exception as e:
        logger.error(f"Health check failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Health check failed"
        )
