"""Row Coercers and Cross-Reference Resolver.

One coercer per entity kind converts an untyped row into a typed record using
the named default policies in ``src.domain.coercion``. The same coercers serve
two sources:

    - CSV rows (``CsvRow``), keyed by the uploaded header names
    - Language-model diff records (``DiffRow``), keyed by camelCase JSON names

so a diff record is held to exactly the same rules as an uploaded row before it
reaches the store.

Rows that name a related entity (activity facilitator, housekeeping assigned
staff, medication user) are linked through ``ReferenceResolver``: best-effort,
exact-name lookups that resolve to "no link" instead of failing the row.
"""

import logging
from typing import Any, Callable, Mapping, Optional, Protocol

from src.domain.coercion import (
    is_blank,
    parse_bool,
    parse_date,
    parse_int,
    parse_list,
    snap_alias,
    text_or_default,
    text_or_none,
    utc_now,
)
from src.domain.entity_kinds import (
    BLOCK_TYPE_ALIASES,
    DEFAULT_BLOCK_TYPE,
    DEFAULT_LAUNDRY_TYPE,
    DEFAULT_TASK_TYPE,
    LAUNDRY_TYPES,
    TASK_TYPE_ALIASES,
    USERS_TABLE,
    EntityKind,
)
from src.domain.ports import StoragePort
from src.domain.records import (
    ActivityRecord,
    EmergencyContactRecord,
    GuidelineRecord,
    HouseRuleRecord,
    HousekeepingRecord,
    LaundryRecord,
    MealRecord,
    MedicationEntry,
    ReferenceRecord,
    ScheduleBlockRecord,
    StaffMemberRecord,
)

logger = logging.getLogger(__name__)

LAUNDRY_TYPE_ALIASES: dict[str, str] = {laundry_type.lower(): laundry_type for laundry_type in LAUNDRY_TYPES}


# ============================================================================
# Row accessors
# ============================================================================

class RowAccessor(Protocol):
    """Read access to one untyped row by column name."""

    def get(self, *headers: str) -> Any:
        """Return the first non-empty value among the given header synonyms."""
        ...


class CsvRow:
    """Accessor over a parsed CSV row.

    Header lookup ignores case and surrounding whitespace, matching the
    header validator, so a "meal type" column feeds the "Meal Type" field.
    """

    def __init__(self, raw: Mapping[str, str]):
        self.raw = raw
        self._by_normalized = {key.strip().lower(): value for key, value in raw.items()}

    def get(self, *headers: str) -> Any:
        for header in headers:
            value = self._by_normalized.get(header.strip().lower())
            if not is_blank(value):
                return value
        return None


class DiffRow:
    """Accessor over a language-model diff record.

    Parameters:
        record: Diff record as returned by the model
        field_map: camelCase JSON key -> (CSV header, record field) for the kind
    """

    def __init__(self, record: Mapping[str, Any], field_map: Mapping[str, tuple[str, str]]):
        self.record = record
        self._key_by_header = {header: key for key, (header, _field) in field_map.items()}

    @property
    def record_id(self) -> Optional[str]:
        """Identifier carried by the record, if any."""
        record_id = self.record.get("id")
        if is_blank(record_id):
            return None
        return str(record_id).strip()

    def get(self, *headers: str) -> Any:
        for header in headers:
            key = self._key_by_header.get(header)
            if key is None:
                continue
            value = self.record.get(key)
            if not is_blank(value):
                return value
        return None


# ============================================================================
# Cross-reference resolver
# ============================================================================

class ReferenceResolver:
    """Best-effort lookup of related entities by exact display name.

    Exactly one match links the row. No match, several matches (ambiguous) and
    storage failures all resolve to None, because a typo in a name column must
    never abort an import. Lookups are memoised for the resolver's lifetime,
    which is one import request.
    """

    def __init__(self, storage: StoragePort):
        self.storage = storage
        self._cache: dict[tuple[str, str], Optional[str]] = {}

    def resolve(self, table: str, name: Any, field: str = "name") -> Optional[str]:
        """Resolve a display name to the id of an already-persisted record.

        Parameters:
            table: Table holding the related entity
            name: Display name to match exactly (case-sensitive)
            field: Column compared against the name

        Returns:
            Optional[str]: The related id, or None when unlinked
        """
        if is_blank(name):
            return None
        name = str(name).strip()
        cache_key = (table, name)
        if cache_key in self._cache:
            return self._cache[cache_key]

        result = self.storage.find_ids(table, field, name)
        if not result.is_success():
            logger.warning(f"Reference lookup failed for '{name}' in {table}: {result.error}")
            resolved = None
        elif len(result.value) == 1:
            resolved = result.value[0]
        else:
            if result.value:
                logger.info(f"Ambiguous reference '{name}' in {table} ({len(result.value)} matches), leaving unlinked")
            else:
                logger.info(f"No {table} record named '{name}', leaving unlinked")
            resolved = None

        self._cache[cache_key] = resolved
        return resolved

    def resolve_staff(self, name: Any) -> Optional[str]:
        """Resolve a staff member display name."""
        return self.resolve(EntityKind.STAFF_MEMBER.table_name, name)

    def resolve_user(self, name: Any) -> Optional[str]:
        """Resolve a facility user display name."""
        return self.resolve(USERS_TABLE, name)


# ============================================================================
# Per-kind coercers
# ============================================================================

def coerce_meal(row: RowAccessor, resolver: ReferenceResolver) -> MealRecord:
    nutrition = text_or_none(row.get("Nutrition Highlights"))
    return MealRecord(
        date=parse_date(row.get("Date")),
        meal_type=text_or_default(row.get("Meal Type"), "Other"),
        items=parse_list(row.get("Items")),
        start_time=text_or_none(row.get("Start Time")),
        end_time=text_or_none(row.get("End Time")),
        days_of_week=parse_list(row.get("Day of Week", "Days of Week")),
        nutrition_highlights={"text": nutrition} if nutrition else None,
        notes=text_or_none(row.get("Notes")),
    )


def coerce_activity(row: RowAccessor, resolver: ReferenceResolver) -> ActivityRecord:
    return ActivityRecord(
        name=text_or_default(row.get("Activity Name", "Name"), "Unnamed"),
        description=text_or_none(row.get("Description")),
        start_time=text_or_default(row.get("Start Time"), "00:00"),
        end_time=text_or_default(row.get("End Time"), "00:00"),
        location=text_or_none(row.get("Location")),
        days_of_week=parse_list(row.get("Day of Week", "Days of Week")),
        date=parse_date(row.get("Date")),
        facilitator_id=resolver.resolve_staff(row.get("Facilitator")),
        notes=text_or_none(row.get("Notes")),
    )


def coerce_schedule_block(row: RowAccessor, resolver: ReferenceResolver) -> ScheduleBlockRecord:
    return ScheduleBlockRecord(
        start_time=text_or_default(row.get("Start Time"), "00:00"),
        end_time=text_or_none(row.get("End Time")),
        block_type=snap_alias(row.get("Block Type"), BLOCK_TYPE_ALIASES, DEFAULT_BLOCK_TYPE),
        activity=text_or_default(row.get("Activity"), ""),
        location=text_or_none(row.get("Location")),
        notes=text_or_none(row.get("Notes")),
        days_of_week=parse_list(row.get("Days of Week", "Day of Week")),
        # Unspecified flags are stored as False
        refers_to_meal=parse_bool(row.get("Refers to Meal")) is True,
        refers_to_activity=parse_bool(row.get("Refers to Activity")) is True,
        refers_to_meds=parse_bool(row.get("Refers to Meds")) is True,
    )


def coerce_staff_member(row: RowAccessor, resolver: ReferenceResolver) -> StaffMemberRecord:
    # reports_to_id is linked by the importer's second pass
    return StaffMemberRecord(
        name=text_or_default(row.get("Name"), "Unknown"),
        title=text_or_none(row.get("Title")),
        division=text_or_none(row.get("Division")),
        email=text_or_none(row.get("Email")),
        phone=text_or_none(row.get("Phone")),
    )


def coerce_guideline(row: RowAccessor, resolver: ReferenceResolver) -> GuidelineRecord:
    return GuidelineRecord(
        title=text_or_default(row.get("Title"), "Untitled"),
        content=text_or_default(row.get("Content"), ""),
        category=text_or_none(row.get("Category")),
    )


def coerce_house_rule(row: RowAccessor, resolver: ReferenceResolver) -> HouseRuleRecord:
    return HouseRuleRecord(
        title=text_or_default(row.get("Title"), "Untitled"),
        content=text_or_default(row.get("Content"), ""),
        category=text_or_none(row.get("Category")),
    )


def coerce_emergency_contact(row: RowAccessor, resolver: ReferenceResolver) -> EmergencyContactRecord:
    return EmergencyContactRecord(
        name=text_or_default(row.get("Name"), "Unknown"),
        phone_number=text_or_default(row.get("Phone Number", "Phone"), ""),
        type=text_or_default(row.get("Type"), "Other"),
        notes=text_or_none(row.get("Notes")),
        priority=parse_int(row.get("Priority"), default=0),
        is_active=True,
    )


def coerce_housekeeping(row: RowAccessor, resolver: ReferenceResolver) -> HousekeepingRecord:
    return HousekeepingRecord(
        date=parse_date(row.get("Date")) or utc_now(),
        day_of_week=text_or_default(row.get("Day of Week"), ""),
        room_area=text_or_none(row.get("Room/Area", "Room")),
        task_type=snap_alias(row.get("Task Type"), TASK_TYPE_ALIASES, DEFAULT_TASK_TYPE),
        daily_tasks_completed=text_or_none(row.get("Daily Tasks Completed")),
        assigned_staff_id=resolver.resolve_staff(row.get("Assigned Staff")),
        time_in=parse_date(row.get("Time In")),
        time_out=parse_date(row.get("Time Out")),
        supervisor_initials=text_or_none(row.get("Supervisor Initials")),
        notes=text_or_none(row.get("Notes")),
    )


def coerce_laundry(row: RowAccessor, resolver: ReferenceResolver) -> LaundryRecord:
    return LaundryRecord(
        date=parse_date(row.get("Date")) or utc_now(),
        day_of_week=text_or_default(row.get("Day of Week"), ""),
        member_name=text_or_none(row.get("Member Name")),
        room_number=text_or_none(row.get("Room Number")),
        laundry_type=snap_alias(row.get("Laundry Type"), LAUNDRY_TYPE_ALIASES, DEFAULT_LAUNDRY_TYPE),
        laundry_vendor=text_or_none(row.get("Laundry Vendor")),
        expected_return_date=parse_date(row.get("Expected Return Date")),
        returned_date=parse_date(row.get("Returned Date")),
        condition_check=parse_bool(row.get("Condition Check")),
        notes=text_or_none(row.get("Notes")),
    )


def coerce_medication_entry(row: RowAccessor) -> MedicationEntry:
    """Coerce one medication line (grouping by user happens in the importer)."""
    return MedicationEntry(
        medication=text_or_default(row.get("Medication"), ""),
        dosage=text_or_default(row.get("Dosage"), ""),
        time=text_or_default(row.get("Time"), ""),
        frequency=text_or_default(row.get("Frequency"), "Daily"),
        prescribing_doctor=text_or_default(row.get("Prescribing Doctor"), ""),
        notes=text_or_default(row.get("Notes"), ""),
    )


def medication_owner(row: RowAccessor) -> str:
    """Name of the user a medication row belongs to (User, Client, Name fallback chain)."""
    return text_or_default(row.get("User", "Client", "Name"), "unknown")


RowCoercer = Callable[[RowAccessor, ReferenceResolver], ReferenceRecord]

# Medications are grouped per user and have no single-row coercer
ROW_COERCERS: dict[EntityKind, RowCoercer] = {
    EntityKind.MEAL: coerce_meal,
    EntityKind.ACTIVITY: coerce_activity,
    EntityKind.SCHEDULE_BLOCK: coerce_schedule_block,
    EntityKind.STAFF_MEMBER: coerce_staff_member,
    EntityKind.GUIDELINE: coerce_guideline,
    EntityKind.HOUSE_RULE: coerce_house_rule,
    EntityKind.EMERGENCY_CONTACT: coerce_emergency_contact,
    EntityKind.HOUSEKEEPING: coerce_housekeeping,
    EntityKind.LAUNDRY: coerce_laundry,
}
