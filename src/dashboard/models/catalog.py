"""Catalog, snapshot, stats and user directory models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TableInfo(BaseModel):
    """One importable table."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    key: str
    label: str
    default_file: str | None = None
    expected_headers: list[str]
    smart_update: bool


class TablesResponse(BaseModel):
    tables: list[TableInfo]


class RecordsResponse(BaseModel):
    """Current snapshot of one kind."""
    table: str
    count: int
    records: list[dict[str, Any]]


class StatsResponse(BaseModel):
    """Record counts per table, keyed the way the dashboard expects."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    meals: int = 0
    activities: int = 0
    schedule_blocks: int = 0
    staff: int = 0
    guidelines: int = 0
    house_rules: int = 0
    emergency_contacts: int = 0
    users: int = 0
    housekeeping: int = 0
    laundry: int = 0
    medications: int = 0


class UserCreate(BaseModel):
    name: str = Field(..., description="Display name medication imports match against")


class UserResponse(BaseModel):
    id: str
    name: str


class UsersResponse(BaseModel):
    users: list[UserResponse]
