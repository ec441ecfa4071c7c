"""Domain layer for the concierge operations console.

This module contains the reference-data catalog, typed records, coercion
rules and the reconciliation workflow. Domain models are pure Python with no
external dependencies beyond Pydantic and pandas.
"""

from .entity_kinds import EntityKind
from .records import (
    ActivityRecord,
    EmergencyContactRecord,
    GuidelineRecord,
    HouseRuleRecord,
    HousekeepingRecord,
    LaundryRecord,
    MealRecord,
    MedicationEntry,
    MedicationScheduleRecord,
    ScheduleBlockRecord,
    StaffMemberRecord,
)

__all__ = [
    "EntityKind",
    "MealRecord",
    "ActivityRecord",
    "ScheduleBlockRecord",
    "StaffMemberRecord",
    "GuidelineRecord",
    "HouseRuleRecord",
    "EmergencyContactRecord",
    "HousekeepingRecord",
    "LaundryRecord",
    "MedicationEntry",
    "MedicationScheduleRecord",
]
