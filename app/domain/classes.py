"""Domain models for scheduled classes, their roster and attendance history."""
from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from app.domain.base import DocumentModel, RequestModel


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


_DAY_LOOKUP = {day.value.lower(): day.value for day in DayOfWeek}
_DAY_LOOKUP.update({day.value[:3].lower(): day.value for day in DayOfWeek})


def normalize_day(value) -> str:
    """Map ``Mon``/``monday``/``Monday`` to the canonical weekday name."""
    if isinstance(value, DayOfWeek):
        return value.value
    key = str(value).strip().lower()
    if key not in _DAY_LOOKUP:
        raise ValueError(f"Unknown day of week: {value}")
    return _DAY_LOOKUP[key]


def day_start(value) -> datetime:
    """Midnight of the calendar day of ``value`` (a date or datetime)."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


class Slot(DocumentModel):
    """One weekly (day, time, duration) entry of a class schedule."""
    day: DayOfWeek
    time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    duration: int = Field(default=60, ge=1, description="Minutes")

    @field_validator("day", mode="before")
    @classmethod
    def _normalize_day(cls, value):
        return normalize_day(value)

    @property
    def key(self) -> tuple:
        return (self.day, self.time)

    def describe(self) -> dict:
        return {"day": self.day, "time": self.time}


class RosterEntry(DocumentModel):
    account_id: str
    owned_pass_id: str
    registered_at: datetime = Field(default_factory=datetime.utcnow)


class AttendeeEntry(DocumentModel):
    account_id: str
    owned_pass_id: str
    check_in_time: datetime = Field(default_factory=datetime.utcnow)


class AttendanceRecord(DocumentModel):
    """Everyone checked in to a class on one calendar day."""
    date: datetime
    attendees: List[AttendeeEntry] = Field(default_factory=list)

    def account_ids(self) -> List[str]:
        return [attendee.account_id for attendee in self.attendees]


class ClassOffering(DocumentModel):
    """A recurring scheduled class with its embedded roster and attendance.

    Invariants: ``len(roster) <= capacity`` and an account appears at most once
    in the roster.
    """
    class_id: str
    class_name: str
    class_type: str
    description: Optional[str] = None
    instructor_id: str
    slots: List[Slot] = Field(min_length=1)
    capacity: int = Field(default=20, ge=1)
    is_active: bool = True
    roster: List[RosterEntry] = Field(default_factory=list)
    attendance: List[AttendanceRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_full(self) -> bool:
        return len(self.roster) >= self.capacity

    def roster_entry(self, account_id: str) -> Optional[RosterEntry]:
        for entry in self.roster:
            if entry.account_id == account_id:
                return entry
        return None

    def is_registered(self, account_id: str) -> bool:
        return self.roster_entry(account_id) is not None

    def attendance_for(self, on: date) -> Optional[AttendanceRecord]:
        target = day_start(on)
        for record in self.attendance:
            if day_start(record.date) == target:
                return record
        return None


# -----------------
# REQUEST BODIES
# -----------------

class ClassCreateRequest(RequestModel):
    class_name: str = Field(min_length=1)
    class_type: str = Field(min_length=1)
    description: Optional[str] = None
    instructor_id: str = Field(min_length=1)
    slots: List[Slot] = Field(min_length=1)
    capacity: Optional[int] = Field(default=None, ge=1)

    class Config:
        json_schema_extra = {
            "example": {
                "className": "Morning Flow",
                "classType": "Vinyasa",
                "instructorId": "I00001",
                "slots": [{"day": "Monday", "time": "09:00", "duration": 60}],
                "capacity": 20
            }
        }


class ClassUpdateRequest(RequestModel):
    class_name: Optional[str] = Field(default=None, min_length=1)
    class_type: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    instructor_id: Optional[str] = Field(default=None, min_length=1)
    slots: Optional[List[Slot]] = Field(default=None, min_length=1)
    capacity: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class RegistrationRequest(RequestModel):
    owned_pass_id: str = Field(min_length=1)


class AttendanceRequest(RequestModel):
    date: date
    attendees: List[str] = Field(default_factory=list, description="Account ids that checked in")
