"""Class schedule, registration and attendance endpoints.

``/mine`` is declared before ``/{class_id}`` so it is not captured as an id.
"""
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from app.core.auth import require_permission
from app.core.permissions import Permission
from app.domain.account import Account
from app.domain.classes import (
    AttendanceRequest,
    ClassCreateRequest,
    ClassUpdateRequest,
    RegistrationRequest,
)
from app.infrastructure.mongo import StudioStore, get_store
from app.services import classes

router = APIRouter(prefix="/classes", tags=["classes"])

manage_classes = require_permission(Permission.MANAGE_CLASSES)
take_attendance = require_permission(Permission.TAKE_ATTENDANCE)
register_for_class = require_permission(Permission.REGISTER_FOR_CLASS)


@router.get("")
def list_classes(
    active_only: bool = Query(False, alias="activeOnly"),
    store: StudioStore = Depends(get_store),
):
    """Class schedule. Public."""
    return [offering.to_document() for offering in classes.list_classes(store, active_only)]


@router.get("/mine")
def my_classes(instructor: Account = Depends(take_attendance), store: StudioStore = Depends(get_store)):
    """Active classes taught by the caller with their rosters.

    Requires: Instructor profile
    """
    return classes.instructor_classes(store, instructor)


@router.get("/{class_id}")
def get_class(class_id: str, store: StudioStore = Depends(get_store)):
    return classes.get_class(store, class_id).to_document()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_class(
    req: ClassCreateRequest,
    manager: Account = Depends(manage_classes),
    store: StudioStore = Depends(get_store),
):
    """Create a class.

    Returns 409 with ``alternatives`` when the instructor already teaches one
    of the requested slots.
    """
    return classes.create_class(store, req)


@router.put("/{class_id}")
def update_class(
    class_id: str,
    req: ClassUpdateRequest,
    manager: Account = Depends(manage_classes),
    store: StudioStore = Depends(get_store),
):
    return classes.update_class(store, class_id, req)


@router.delete("/{class_id}")
def delete_class(
    class_id: str,
    manager: Account = Depends(manage_classes),
    store: StudioStore = Depends(get_store),
):
    return classes.delete_class(store, class_id)


# -----------------
# REGISTRATION
# -----------------

@router.post("/{class_id}/register")
def register(
    class_id: str,
    req: RegistrationRequest,
    account: Account = Depends(register_for_class),
    store: StudioStore = Depends(get_store),
):
    """Join a class roster with one of the caller's passes.

    Example:
        POST /api/classes/C00001/register
        {"ownedPassId": "UP00001"}
    """
    return classes.register(store, class_id, account, req.owned_pass_id)


@router.delete("/{class_id}/register")
def unregister(
    class_id: str,
    account: Account = Depends(register_for_class),
    store: StudioStore = Depends(get_store),
):
    return classes.unregister(store, class_id, account)


# -----------------
# ATTENDANCE
# -----------------

@router.post("/{class_id}/attendance")
def mark_attendance(
    class_id: str,
    req: AttendanceRequest,
    instructor: Account = Depends(take_attendance),
    store: StudioStore = Depends(get_store),
):
    """Record attendance for one date and debit a session per attendee.

    Example:
        POST /api/classes/C00001/attendance
        {"date": "2024-03-04", "attendees": ["U00001", "U00002"]}
    """
    return classes.mark_attendance(store, class_id, instructor, req.date, req.attendees)


@router.get("/{class_id}/attendance")
def get_attendance(
    class_id: str,
    on: date = Query(..., alias="date"),
    instructor: Account = Depends(take_attendance),
    store: StudioStore = Depends(get_store),
):
    return classes.get_attendance(store, class_id, instructor, on)
