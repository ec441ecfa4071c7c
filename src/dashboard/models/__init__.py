"""Operations API Pydantic models."""

from src.dashboard.models.health import HealthResponse, DatabaseHealth, LanguageModelHealth
from src.dashboard.models.imports import ImportResponse, SmartUpdateRequest, SmartUpdateResponse
from src.dashboard.models.catalog import (
    RecordsResponse,
    StatsResponse,
    TableInfo,
    TablesResponse,
    UserCreate,
    UserResponse,
    UsersResponse,
)
