"""Read-side endpoints: table catalog, snapshots, stats and the user directory."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from src.dashboard.api.dependencies import StorageDep
from src.dashboard.models.catalog import (
    RecordsResponse,
    StatsResponse,
    TableInfo,
    TablesResponse,
    UserCreate,
    UserResponse,
    UsersResponse,
)
from src.domain.entity_kinds import (
    EXPECTED_HEADERS,
    STATS_KEYS,
    TEMPLATE_FILES,
    USERS_TABLE,
    EntityKind,
    supports_smart_update,
)
from src.domain.ports import StorageError, UnknownEntityKindError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/import-tables", response_model=TablesResponse)
async def list_import_tables() -> TablesResponse:
    """List the tables the upload form offers."""
    return TablesResponse(tables=[
        TableInfo(
            key=kind.value,
            label=kind.label,
            default_file=TEMPLATE_FILES[kind] or None,
            expected_headers=EXPECTED_HEADERS[kind],
            smart_update=supports_smart_update(kind),
        )
        for kind in EntityKind
    ])


@router.get("/records/{table}", response_model=RecordsResponse)
def get_records(table: str, storage: StorageDep) -> RecordsResponse:
    """Return every current record of one kind."""
    try:
        kind = EntityKind.parse(table)
    except UnknownEntityKindError as e:
        raise HTTPException(status_code=404, detail=str(e))

    result = storage.fetch_all(kind.table_name)
    if not result.is_success():
        raise StorageError(f"Failed to fetch {kind.label}", operation="fetch_all")
    return RecordsResponse(table=kind.value, count=len(result.value), records=result.value)


@router.get("/stats", response_model=StatsResponse)
def get_stats(storage: StorageDep):
    """Record counts per table for the dashboard tiles."""
    counts = {}
    tables = [(STATS_KEYS[kind], kind.table_name) for kind in EntityKind] + [("users", USERS_TABLE)]
    for key, table_name in tables:
        result = storage.count(table_name)
        if not result.is_success():
            logger.error(f"Failed to count {table_name}: {result.error}")
            return JSONResponse(status_code=500, content={"error": "Failed to fetch stats"})
        counts[key] = result.value
    return StatsResponse(**counts)


@router.get("/users", response_model=UsersResponse)
def list_users(storage: StorageDep) -> UsersResponse:
    """List the user directory medication imports resolve against."""
    result = storage.fetch_all(USERS_TABLE)
    if not result.is_success():
        raise StorageError("Failed to fetch users", operation="fetch_all")
    return UsersResponse(users=[UserResponse(id=row["id"], name=row["name"]) for row in result.value])


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(user: UserCreate, storage: StorageDep) -> UserResponse:
    """Add a user to the directory."""
    name = user.name.strip()
    if not name:
        raise ValidationError("User name is required")

    result = storage.insert(USERS_TABLE, {"name": name})
    if not result.is_success():
        raise StorageError("Failed to create user", operation="insert")
    logger.info(f"Added user {name}")
    return UserResponse(id=result.value, name=name)
