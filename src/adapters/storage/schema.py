"""Table Registry shared by the relational storage adapters.

Every table has a string ``id`` primary key and a ``created_at`` timestamp
(insertion order); the remaining columns match the typed record fields one to
one. List and dict fields are stored as JSON text so both engines share one
schema. Table and column names used in SQL always come from this registry,
never from caller input.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.domain.entity_kinds import AUDIT_TABLE, USERS_TABLE, EntityKind


class ColumnType(str, Enum):
    """Logical column types, mapped to engine types by each adapter."""

    TEXT = "text"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    TIMESTAMP = "timestamp"
    JSON = "json"


ID_COLUMN = "id"
CREATED_AT_COLUMN = "created_at"


@dataclass(frozen=True)
class TableSpec:
    """Column layout of one table (excluding id and created_at)."""

    name: str
    columns: dict[str, ColumnType]

    @property
    def all_columns(self) -> list[str]:
        return [ID_COLUMN, CREATED_AT_COLUMN, *self.columns]

    def column_type(self, column: str) -> Optional[ColumnType]:
        if column == ID_COLUMN:
            return ColumnType.TEXT
        if column == CREATED_AT_COLUMN:
            return ColumnType.TIMESTAMP
        return self.columns.get(column)


_TEXT, _BOOL, _INT, _TS, _JSON = (
    ColumnType.TEXT, ColumnType.BOOLEAN, ColumnType.INTEGER, ColumnType.TIMESTAMP, ColumnType.JSON
)

TABLE_SPECS: dict[str, TableSpec] = {
    spec.name: spec
    for spec in (
        TableSpec(EntityKind.MEAL.table_name, {
            "date": _TS, "meal_type": _TEXT, "items": _JSON, "start_time": _TEXT, "end_time": _TEXT,
            "days_of_week": _JSON, "nutrition_highlights": _JSON, "notes": _TEXT,
        }),
        TableSpec(EntityKind.ACTIVITY.table_name, {
            "name": _TEXT, "description": _TEXT, "start_time": _TEXT, "end_time": _TEXT, "location": _TEXT,
            "days_of_week": _JSON, "date": _TS, "facilitator_id": _TEXT, "notes": _TEXT,
        }),
        TableSpec(EntityKind.SCHEDULE_BLOCK.table_name, {
            "start_time": _TEXT, "end_time": _TEXT, "block_type": _TEXT, "activity": _TEXT, "location": _TEXT,
            "notes": _TEXT, "days_of_week": _JSON, "refers_to_meal": _BOOL, "refers_to_activity": _BOOL,
            "refers_to_meds": _BOOL,
        }),
        TableSpec(EntityKind.STAFF_MEMBER.table_name, {
            "name": _TEXT, "title": _TEXT, "division": _TEXT, "email": _TEXT, "phone": _TEXT, "reports_to_id": _TEXT,
        }),
        TableSpec(EntityKind.GUIDELINE.table_name, {"title": _TEXT, "content": _TEXT, "category": _TEXT}),
        TableSpec(EntityKind.HOUSE_RULE.table_name, {"title": _TEXT, "content": _TEXT, "category": _TEXT}),
        TableSpec(EntityKind.EMERGENCY_CONTACT.table_name, {
            "name": _TEXT, "phone_number": _TEXT, "type": _TEXT, "notes": _TEXT, "priority": _INT, "is_active": _BOOL,
        }),
        TableSpec(EntityKind.HOUSEKEEPING.table_name, {
            "date": _TS, "day_of_week": _TEXT, "room_area": _TEXT, "task_type": _TEXT,
            "daily_tasks_completed": _TEXT, "assigned_staff_id": _TEXT, "time_in": _TS, "time_out": _TS,
            "supervisor_initials": _TEXT, "notes": _TEXT,
        }),
        TableSpec(EntityKind.LAUNDRY.table_name, {
            "date": _TS, "day_of_week": _TEXT, "member_name": _TEXT, "room_number": _TEXT,
            "laundry_type": _TEXT, "laundry_vendor": _TEXT, "expected_return_date": _TS,
            "returned_date": _TS, "condition_check": _BOOL, "notes": _TEXT,
        }),
        TableSpec(EntityKind.MEDICATION.table_name, {"user_id": _TEXT, "medications": _JSON}),
        TableSpec(USERS_TABLE, {"name": _TEXT}),
        TableSpec(AUDIT_TABLE, {"event_type": _TEXT, "table_name": _TEXT, "details": _JSON}),
    )
}
