"""Typed Reference-Data Records.

This module defines the canonical record models for the ten entity kinds.
Every record that reaches the store, whether it came from a CSV row or from a
language-model diff, is one of these models, produced by the per-kind coercers.

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Field names match storage column names one-to-one
    - Enumerated values are snapped by the coercers and stored as plain strings;
      the models hold them to the closed value sets, falling back to the default
    - Defaults mirror the coercion defaults so required columns are never empty
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.domain.coercion import utc_now
from src.domain.entity_kinds import (
    BLOCK_TYPES,
    DEFAULT_BLOCK_TYPE,
    DEFAULT_LAUNDRY_TYPE,
    DEFAULT_TASK_TYPE,
    LAUNDRY_TYPES,
    TASK_TYPES,
)


class ReferenceRecord(BaseModel):
    """Base class for all persisted reference records."""

    model_config = ConfigDict(use_enum_values=True, extra="ignore")


class MealRecord(ReferenceRecord):
    """Meal template (menu entry)."""

    date: Optional[datetime] = Field(None, description="Specific date, if the meal is not recurring")
    meal_type: str = Field("Other", description="Breakfast, Lunch, Dinner, Snack or free text")
    items: list[str] = Field(default_factory=list, description="Menu items in order")
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    days_of_week: list[str] = Field(default_factory=list, description="Day tokens (MON..SUN)")
    nutrition_highlights: Optional[dict] = Field(None, description="Free text wrapped as {'text': ...}")
    notes: Optional[str] = None


class ActivityRecord(ReferenceRecord):
    """Activity template (group schedule entry)."""

    name: str = "Unnamed"
    description: Optional[str] = None
    start_time: str = "00:00"
    end_time: str = "00:00"
    location: Optional[str] = None
    days_of_week: list[str] = Field(default_factory=list)
    date: Optional[datetime] = None
    facilitator_id: Optional[str] = Field(None, description="Linked staff member id")
    notes: Optional[str] = None


class ScheduleBlockRecord(ReferenceRecord):
    """Daily schedule block."""

    start_time: str = "00:00"
    end_time: Optional[str] = None
    block_type: str = DEFAULT_BLOCK_TYPE
    activity: str = ""
    location: Optional[str] = None
    notes: Optional[str] = None
    days_of_week: list[str] = Field(default_factory=list)
    refers_to_meal: bool = False
    refers_to_activity: bool = False
    refers_to_meds: bool = False

    @field_validator("block_type")
    @classmethod
    def validate_block_type(cls, v: str) -> str:
        return v if v in BLOCK_TYPES else DEFAULT_BLOCK_TYPE


class StaffMemberRecord(ReferenceRecord):
    """Staff roster entry."""

    name: str = "Unknown"
    title: Optional[str] = None
    division: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    reports_to_id: Optional[str] = Field(None, description="Supervisor staff member id")


class GuidelineRecord(ReferenceRecord):
    """Program guideline."""

    title: str = "Untitled"
    content: str = ""
    category: Optional[str] = None


class HouseRuleRecord(ReferenceRecord):
    """House rule."""

    title: str = "Untitled"
    content: str = ""
    category: Optional[str] = None


class EmergencyContactRecord(ReferenceRecord):
    """Emergency contact."""

    name: str = "Unknown"
    phone_number: str = ""
    type: str = "Other"
    notes: Optional[str] = None
    priority: int = 0
    is_active: bool = True


class HousekeepingRecord(ReferenceRecord):
    """Housekeeping schedule entry."""

    date: datetime = Field(default_factory=utc_now)
    day_of_week: str = ""
    room_area: Optional[str] = None
    task_type: str = DEFAULT_TASK_TYPE
    daily_tasks_completed: Optional[str] = None
    assigned_staff_id: Optional[str] = Field(None, description="Linked staff member id")
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None
    supervisor_initials: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("task_type")
    @classmethod
    def validate_task_type(cls, v: str) -> str:
        return v if v in TASK_TYPES else DEFAULT_TASK_TYPE


class LaundryRecord(ReferenceRecord):
    """Laundry schedule entry."""

    date: datetime = Field(default_factory=utc_now)
    day_of_week: str = ""
    member_name: Optional[str] = None
    room_number: Optional[str] = None
    laundry_type: str = DEFAULT_LAUNDRY_TYPE
    laundry_vendor: Optional[str] = None
    expected_return_date: Optional[datetime] = None
    returned_date: Optional[datetime] = None
    condition_check: Optional[bool] = Field(None, description="None means unspecified, not False")
    notes: Optional[str] = None

    @field_validator("laundry_type")
    @classmethod
    def validate_laundry_type(cls, v: str) -> str:
        return v if v in LAUNDRY_TYPES else DEFAULT_LAUNDRY_TYPE


class MedicationEntry(BaseModel):
    """One medication line inside a user's schedule."""

    medication: str = ""
    dosage: str = ""
    time: str = ""
    frequency: str = "Daily"
    prescribing_doctor: str = ""
    notes: str = ""


class MedicationScheduleRecord(ReferenceRecord):
    """Medication schedule owned by one user (one record per user)."""

    user_id: str
    medications: list[MedicationEntry] = Field(default_factory=list)
