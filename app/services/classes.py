"""Class scheduling, registration and attendance.

Registration only reserves a roster place; a session is debited from the
attendee's pass when attendance is marked.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.errors import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.permissions import Permission, has_permission
from app.domain.account import Account
from app.domain.classes import (
    AttendanceRecord,
    AttendeeEntry,
    ClassCreateRequest,
    ClassOffering,
    ClassUpdateRequest,
    RosterEntry,
    Slot,
    day_start,
)
from app.infrastructure.mongo import StudioStore

logger = get_logger(__name__)

# Studio opening hours used when suggesting alternative slots
FIRST_HOUR = 6
LAST_HOUR = 20


def suggest_alternatives(time: str) -> List[str]:
    """The hour before and after ``time``, kept within opening hours."""
    hour = int(time.split(":")[0])
    alternatives = []
    if hour > FIRST_HOUR:
        alternatives.append(f"{hour - 1:02d}:00")
    if hour < LAST_HOUR:
        alternatives.append(f"{hour + 1:02d}:00")
    return alternatives


def _check_unique_slots(slots: List[Slot]) -> None:
    seen = set()
    for slot in slots:
        if slot.key in seen:
            raise ValidationError(
                f"Duplicate slot {slot.day} {slot.time} in schedule",
                slot=slot.describe(),
            )
        seen.add(slot.key)


def _check_schedule(
    store: StudioStore,
    instructor_id: str,
    slots: List[Slot],
    exclude_class_id: Optional[str] = None,
) -> None:
    """Reject slots the instructor already teaches in another active class."""
    _check_unique_slots(slots)
    for slot in slots:
        clash = store.classes.find_slot_conflict(instructor_id, slot.day, slot.time, exclude_class_id)
        if clash is not None:
            logger.info(
                f"Schedule conflict with {clash.class_id} on {slot.day} {slot.time}",
                extra={"class_id": clash.class_id}
            )
            raise ConflictError(
                "Schedule conflict found.",
                conflictWith=clash.class_name,
                classId=clash.class_id,
                slot=slot.describe(),
                alternatives=suggest_alternatives(slot.time),
            )


def _require_class(store: StudioStore, class_id: str) -> ClassOffering:
    offering = store.classes.get(class_id)
    if offering is None:
        raise NotFoundError("Class not found")
    return offering


def _require_instructor(store: StudioStore, instructor_id: str):
    profile = store.instructors.get(instructor_id)
    if profile is None:
        raise NotFoundError("Instructor not found")
    return profile


# -----------------
# SCHEDULE
# -----------------

def list_classes(store: StudioStore, active_only: bool = False) -> List[ClassOffering]:
    return store.classes.all_classes(active_only=active_only)


def get_class(store: StudioStore, class_id: str) -> ClassOffering:
    return _require_class(store, class_id)


def create_class(store: StudioStore, payload: ClassCreateRequest) -> Dict[str, Any]:
    """Create a class for an instructor.

    Raises:
        NotFoundError: Unknown instructor
        ValidationError: The same slot listed twice
        ConflictError: The instructor already teaches one of the slots
    """
    _require_instructor(store, payload.instructor_id)
    _check_schedule(store, payload.instructor_id, payload.slots)

    offering = ClassOffering(
        class_id=store.classes.next_id(),
        class_name=payload.class_name,
        class_type=payload.class_type,
        description=payload.description,
        instructor_id=payload.instructor_id,
        slots=payload.slots,
        capacity=payload.capacity or settings.default_class_capacity,
    )
    store.classes.insert(offering)
    store.instructors.add_class(offering.instructor_id, offering.class_id)

    logger.info(
        f"Class {offering.class_id} created for {offering.instructor_id}",
        extra={"class_id": offering.class_id}
    )
    return {
        "message": "Class added successfully.",
        "classId": offering.class_id,
        "class": offering.to_document(),
    }


def update_class(store: StudioStore, class_id: str, payload: ClassUpdateRequest) -> Dict[str, Any]:
    offering = _require_class(store, class_id)
    changes = payload.model_dump(by_alias=True, exclude_none=True)

    if payload.capacity is not None and payload.capacity < len(offering.roster):
        raise BusinessRuleError(
            f"Capacity cannot be lower than the {len(offering.roster)} registered clients",
            registered=len(offering.roster),
        )

    instructor_id = payload.instructor_id or offering.instructor_id
    if payload.instructor_id is not None:
        _require_instructor(store, instructor_id)
    reactivating = payload.is_active is True and not offering.is_active
    if payload.slots is not None or payload.instructor_id is not None or reactivating:
        _check_schedule(store, instructor_id, payload.slots or offering.slots, exclude_class_id=class_id)

    changes["updatedAt"] = datetime.utcnow()
    updated = store.classes.update(class_id, changes)

    if instructor_id != offering.instructor_id:
        store.instructors.remove_class(offering.instructor_id, class_id)
        store.instructors.add_class(instructor_id, class_id)

    return {"message": "Class updated successfully", "class": updated.to_document()}


def delete_class(store: StudioStore, class_id: str) -> Dict[str, Any]:
    offering = _require_class(store, class_id)
    store.classes.delete(class_id)
    store.instructors.remove_class(offering.instructor_id, class_id)
    logger.info(f"Class {class_id} deleted", extra={"class_id": class_id})
    return {"message": "Class deleted successfully", "classId": class_id}


def instructor_classes(store: StudioStore, caller: Account) -> List[Dict[str, Any]]:
    """Active classes taught by the caller, rosters expanded with contact details."""
    profile = store.instructors.by_account(caller.account_id)
    if profile is None:
        raise PermissionDeniedError("Access denied. Instructor permissions required.")

    classes = []
    for offering in store.classes.for_instructor(profile.instructor_id):
        doc = offering.to_document()
        roster = []
        for entry in offering.roster:
            account = store.accounts.get(entry.account_id)
            roster.append({
                **entry.to_document(),
                "name": account.full_name if account else "Unknown",
                "email": account.email if account else None,
            })
        doc["roster"] = roster
        classes.append(doc)
    return classes


# -----------------
# REGISTRATION
# -----------------

def register(
    store: StudioStore,
    class_id: str,
    caller: Account,
    owned_pass_id: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Put the caller on a class roster using one of their passes.

    Checks run in order: class, pass ownership, sessions left, expiry,
    duplicate registration, capacity. No session is debited here.
    """
    now = now or datetime.utcnow()
    offering = _require_class(store, class_id)

    owned = store.owned_passes.owned_by(owned_pass_id, caller.account_id)
    if owned is None:
        raise NotFoundError("Pass not found")
    if not owned.is_active:
        raise BusinessRuleError("Valid pass required to register for class")
    if owned.sessions_remaining <= 0:
        raise BusinessRuleError("No sessions remaining on your pass")
    if owned.is_expired(now):
        raise BusinessRuleError("Your pass has expired")

    if offering.is_registered(caller.account_id):
        raise BusinessRuleError("You are already registered for this class")
    if offering.is_full:
        raise BusinessRuleError("Class is at full capacity")

    entry = RosterEntry(account_id=caller.account_id, owned_pass_id=owned.owned_pass_id, registered_at=now)
    store.classes.add_registration(class_id, entry)

    logger.info(
        f"Account registered for class {class_id}",
        extra={"account_id": caller.account_id, "class_id": class_id}
    )
    return {
        "message": "Successfully registered for class",
        "classId": class_id,
        "registration": entry.to_document(),
        "sessionsRemaining": owned.sessions_remaining,
    }


def unregister(store: StudioStore, class_id: str, caller: Account) -> Dict[str, Any]:
    offering = _require_class(store, class_id)
    if not offering.is_registered(caller.account_id):
        raise NotFoundError("You are not registered for this class")

    store.classes.remove_registration(class_id, caller.account_id)
    logger.info(
        f"Account left class {class_id}",
        extra={"account_id": caller.account_id, "class_id": class_id}
    )
    return {"message": "Successfully unregistered from class", "classId": class_id}


# -----------------
# ATTENDANCE
# -----------------

def _class_for_attendance(store: StudioStore, class_id: str, caller: Account) -> ClassOffering:
    """Load a class the caller may take attendance for (their own, or any for managers)."""
    offering = store.classes.get(class_id)
    if offering is not None and has_permission(caller.role, Permission.MANAGE_CLASSES):
        return offering

    profile = store.instructors.by_account(caller.account_id)
    if offering is None or profile is None or offering.instructor_id != profile.instructor_id:
        raise NotFoundError("Class not found or access denied")
    return offering


def mark_attendance(
    store: StudioStore,
    class_id: str,
    caller: Account,
    on: date,
    account_ids: List[str],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Record who attended a class on ``on`` and debit one session each.

    Accounts not on the roster, or whose pass has no sessions left, are
    dropped silently. Re-marking a date replaces that date's list; accounts
    still on the roster and already recorded keep their entry without a
    second debit, and accounts left out are not refunded.
    """
    now = now or datetime.utcnow()
    offering = _class_for_attendance(store, class_id, caller)
    previous = offering.attendance_for(on)
    already_recorded = {a.account_id: a for a in previous.attendees} if previous else {}

    accepted: List[AttendeeEntry] = []
    seen = set()
    for account_id in account_ids:
        if account_id in seen:
            continue
        seen.add(account_id)

        entry = offering.roster_entry(account_id)
        if entry is None:
            logger.debug(f"{account_id} not on roster, skipped", extra={"class_id": class_id})
            continue

        if account_id in already_recorded:
            accepted.append(already_recorded[account_id])
            continue

        debited = store.owned_passes.debit_session(entry.owned_pass_id, account_id)
        if debited is None:
            logger.debug(f"{account_id} has no sessions left, skipped", extra={"class_id": class_id})
            continue
        accepted.append(AttendeeEntry(account_id=account_id, owned_pass_id=entry.owned_pass_id, check_in_time=now))

    record = AttendanceRecord(date=day_start(on), attendees=accepted)
    records = [r for r in offering.attendance if day_start(r.date) != record.date]
    records.append(record)
    updated = store.classes.save_attendance(class_id, records)

    logger.info(
        f"Attendance marked for {len(accepted)} of {len(seen)} listed",
        extra={"account_id": caller.account_id, "class_id": class_id}
    )
    return {
        "message": "Attendance marked successfully",
        "attendeesCount": len(accepted),
        "class": updated.to_document(),
    }


def get_attendance(store: StudioStore, class_id: str, caller: Account, on: date) -> Dict[str, Any]:
    offering = _class_for_attendance(store, class_id, caller)
    record = offering.attendance_for(on) or AttendanceRecord(date=day_start(on))
    return {
        "class": {"classId": offering.class_id, "className": offering.class_name},
        "date": on.isoformat(),
        "attendance": record.to_document(),
    }
