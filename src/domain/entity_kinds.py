"""Entity-Kind Catalog.

This module defines the fixed set of reference-data kinds the console manages,
together with the static tables that form the import contract: expected CSV
headers, boolean tokens and enumerated-value alias maps. Operator-authored CSV
files depend on these tables, so they are reproduced verbatim and must not be
reordered or "cleaned up".

Architecture:
    - Pure domain constants with zero infrastructure dependencies
    - EntityKind values are the wire keys used by the upload form and API
"""

from enum import Enum
from typing import Optional

from src.domain.ports import UnknownEntityKindError


class EntityKind(str, Enum):
    """Closed set of reference-data kinds (value = wire key)."""

    MEAL = "meals"
    ACTIVITY = "activities"
    SCHEDULE_BLOCK = "schedule"
    STAFF_MEMBER = "staff"
    GUIDELINE = "guidelines"
    HOUSE_RULE = "houserules"
    EMERGENCY_CONTACT = "emergency"
    HOUSEKEEPING = "housekeeping"
    LAUNDRY = "laundry"
    MEDICATION = "medications"

    @classmethod
    def parse(cls, key: Optional[str]) -> 'EntityKind':
        """Resolve a wire key to an EntityKind.

        Parameters:
            key: Table key as sent by the caller (e.g. "meals")

        Returns:
            EntityKind: The matching kind

        Raises:
            UnknownEntityKindError: If the key is empty or not in the catalog
        """
        if isinstance(key, cls):
            return key
        normalized = (key or "").strip()
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise UnknownEntityKindError(f"Unknown table: {key}", key=key)

    @property
    def table_name(self) -> str:
        """Storage table backing this kind."""
        return TABLE_NAMES[self]

    @property
    def label(self) -> str:
        """Operator-facing label."""
        return TABLE_LABELS[self]


# Storage tables besides the entity kinds
USERS_TABLE = "users"
AUDIT_TABLE = "audit_log"

TABLE_NAMES: dict[EntityKind, str] = {
    EntityKind.MEAL: "meal_templates",
    EntityKind.ACTIVITY: "activity_templates",
    EntityKind.SCHEDULE_BLOCK: "daily_schedule_templates",
    EntityKind.STAFF_MEMBER: "staff_members",
    EntityKind.GUIDELINE: "guidelines",
    EntityKind.HOUSE_RULE: "house_rules",
    EntityKind.EMERGENCY_CONTACT: "emergency_contacts",
    EntityKind.HOUSEKEEPING: "housekeeping_schedules",
    EntityKind.LAUNDRY: "laundry_schedules",
    EntityKind.MEDICATION: "user_medications",
}

TABLE_LABELS: dict[EntityKind, str] = {
    EntityKind.MEAL: "Meal Templates",
    EntityKind.ACTIVITY: "Activity Templates",
    EntityKind.SCHEDULE_BLOCK: "Daily Schedule",
    EntityKind.STAFF_MEMBER: "Staff Members",
    EntityKind.GUIDELINE: "Guidelines",
    EntityKind.HOUSE_RULE: "House Rules",
    EntityKind.EMERGENCY_CONTACT: "Emergency Contacts",
    EntityKind.HOUSEKEEPING: "Housekeeping Schedule",
    EntityKind.LAUNDRY: "Laundry Schedule",
    EntityKind.MEDICATION: "Medications",
}

# Keys of the dashboard stats payload
STATS_KEYS: dict[EntityKind, str] = {
    EntityKind.MEAL: "meals",
    EntityKind.ACTIVITY: "activities",
    EntityKind.SCHEDULE_BLOCK: "scheduleBlocks",
    EntityKind.STAFF_MEMBER: "staff",
    EntityKind.GUIDELINE: "guidelines",
    EntityKind.HOUSE_RULE: "houseRules",
    EntityKind.EMERGENCY_CONTACT: "emergencyContacts",
    EntityKind.HOUSEKEEPING: "housekeeping",
    EntityKind.LAUNDRY: "laundry",
    EntityKind.MEDICATION: "medications",
}

# Default file names operators export from their spreadsheets
TEMPLATE_FILES: dict[EntityKind, str] = {
    EntityKind.MEAL: "meal-menu.csv",
    EntityKind.ACTIVITY: "group-schedule.csv",
    EntityKind.SCHEDULE_BLOCK: "daily-schedule.csv",
    EntityKind.STAFF_MEMBER: "team-roster.csv",
    EntityKind.GUIDELINE: "",
    EntityKind.HOUSE_RULE: "",
    EntityKind.EMERGENCY_CONTACT: "emergency-contacts.csv",
    EntityKind.HOUSEKEEPING: "housekeeping-schedule.csv",
    EntityKind.LAUNDRY: "laundry-schedule.csv",
    EntityKind.MEDICATION: "medications.csv",
}


# ============================================================================
# Import contract tables
# ============================================================================

EXPECTED_HEADERS: dict[EntityKind, list[str]] = {
    EntityKind.MEAL: ["Date", "Day of Week", "Meal Type", "Items", "Start Time", "End Time", "Nutrition Highlights", "Notes"],
    EntityKind.ACTIVITY: ["Date", "Day of Week", "Activity Name", "Description", "Start Time", "End Time", "Location", "Facilitator", "Notes"],
    EntityKind.SCHEDULE_BLOCK: ["Start Time", "End Time", "Block Type", "Activity", "Location", "Notes", "Days of Week", "Refers to Meal", "Refers to Activity", "Refers to Meds"],
    EntityKind.STAFF_MEMBER: ["Name", "Title", "Division", "Email", "Phone", "Reports To"],
    EntityKind.GUIDELINE: ["Title", "Content", "Category"],
    EntityKind.HOUSE_RULE: ["Title", "Content", "Category"],
    EntityKind.EMERGENCY_CONTACT: ["Name", "Phone Number", "Type", "Notes", "Priority"],
    EntityKind.HOUSEKEEPING: ["Date", "Day of Week", "Room/Area", "Task Type", "Daily Tasks Completed", "Assigned Staff", "Time In", "Time Out", "Supervisor Initials", "Notes"],
    EntityKind.LAUNDRY: ["Date", "Day of Week", "Member Name", "Room Number", "Laundry Type", "Laundry Vendor", "Expected Return Date", "Returned Date", "Condition Check", "Notes"],
    EntityKind.MEDICATION: ["User", "Medication", "Dosage", "Time", "Frequency", "Prescribing Doctor", "Notes"],
}

TRUTHY_VALUES = ("yes", "true", "1", "y")
FALSY_VALUES = ("no", "false", "0", "n")

BLOCK_TYPES = (
    "WakeUp", "MedicationWindow", "Meal", "GroupSession",
    "FreeTime", "QuietHours", "LightsOut", "Other",
)

BLOCK_TYPE_ALIASES: dict[str, str] = {
    "wake up": "WakeUp", "wakeup": "WakeUp",
    "medication": "MedicationWindow", "medication window": "MedicationWindow", "medicationwindow": "MedicationWindow", "meds": "MedicationWindow",
    "meal": "Meal", "meals": "Meal",
    "group session": "GroupSession", "groupsession": "GroupSession", "group": "GroupSession",
    "free time": "FreeTime", "freetime": "FreeTime", "free": "FreeTime",
    "quiet hours": "QuietHours", "quiethours": "QuietHours", "quiet": "QuietHours",
    "lights out": "LightsOut", "lightsout": "LightsOut",
    "other": "Other",
}

TASK_TYPES = ("Daily", "Deep")
TASK_TYPE_ALIASES: dict[str, str] = {"deep": "Deep"}

LAUNDRY_TYPES = ("Personal", "Linens", "Towels")

# Fallbacks applied when an enumerated value is not recognised
DEFAULT_BLOCK_TYPE = "Other"
DEFAULT_TASK_TYPE = "Daily"
DEFAULT_LAUNDRY_TYPE = "Personal"


# ============================================================================
# Smart-update (instruction-to-diff) support
# ============================================================================

SMART_UPDATE_DESCRIPTIONS: dict[EntityKind, str] = {
    EntityKind.MEAL: (
        "Meals with fields: mealType (breakfast/lunch/dinner/snack), items (string array), "
        "startTime (e.g. '08:00'), endTime (e.g. '09:00'), daysOfWeek (array of "
        "MON/TUE/WED/THU/FRI/SAT/SUN), notes (optional string)"
    ),
    EntityKind.ACTIVITY: (
        "Activities with fields: name (string), description (optional), startTime (e.g. '09:00'), "
        "endTime (e.g. '10:00'), location (optional), daysOfWeek (array of "
        "MON/TUE/WED/THU/FRI/SAT/SUN), notes (optional)"
    ),
    EntityKind.GUIDELINE: "Guidelines with fields: title (string), content (string), category (optional string)",
    EntityKind.HOUSE_RULE: "House rules with fields: title (string), content (string), category (optional string)",
}

# Model-facing table names used in the prompt
SMART_UPDATE_TABLES: dict[EntityKind, str] = {
    EntityKind.MEAL: "MealTemplate",
    EntityKind.ACTIVITY: "ActivityTemplate",
    EntityKind.GUIDELINE: "Guideline",
    EntityKind.HOUSE_RULE: "HouseRule",
}

# Plural nouns used in reconciliation summaries
SUMMARY_NOUNS: dict[EntityKind, str] = {
    EntityKind.MEAL: "meals",
    EntityKind.ACTIVITY: "activities",
    EntityKind.GUIDELINE: "guidelines",
    EntityKind.HOUSE_RULE: "house rules",
}

# Diff record key -> (CSV header read by the coercer, record field)
DIFF_FIELDS: dict[EntityKind, dict[str, tuple[str, str]]] = {
    EntityKind.MEAL: {
        "mealType": ("Meal Type", "meal_type"),
        "items": ("Items", "items"),
        "startTime": ("Start Time", "start_time"),
        "endTime": ("End Time", "end_time"),
        "daysOfWeek": ("Days of Week", "days_of_week"),
        "date": ("Date", "date"),
        "notes": ("Notes", "notes"),
    },
    EntityKind.ACTIVITY: {
        "name": ("Activity Name", "name"),
        "description": ("Description", "description"),
        "startTime": ("Start Time", "start_time"),
        "endTime": ("End Time", "end_time"),
        "location": ("Location", "location"),
        "daysOfWeek": ("Days of Week", "days_of_week"),
        "date": ("Date", "date"),
        "notes": ("Notes", "notes"),
    },
    EntityKind.GUIDELINE: {
        "title": ("Title", "title"),
        "content": ("Content", "content"),
        "category": ("Category", "category"),
    },
    EntityKind.HOUSE_RULE: {
        "title": ("Title", "title"),
        "content": ("Content", "content"),
        "category": ("Category", "category"),
    },
}

# Legacy console action ids; None marks "use raw override instead"
ACTION_KINDS: dict[str, Optional[EntityKind]] = {
    "mainmenu-schedule": None,
    "mainmenu-meals": EntityKind.MEAL,
    "mainmenu-activities": EntityKind.ACTIVITY,
    "mainmenu-logistics": None,
    "mainmenu-medication": None,
    "mainmenu-guidelines": EntityKind.GUIDELINE,
    "mainmenu-houserules": EntityKind.HOUSE_RULE,
    "mainmenu-support-request": None,
    "mainmenu-advocates": None,
}


def supports_smart_update(kind: EntityKind) -> bool:
    """Return True if instruction-to-diff reconciliation is available for the kind."""
    return kind in SMART_UPDATE_DESCRIPTIONS
