"""Instructor and manager promotion endpoints (manager only)."""
from fastapi import APIRouter, Depends, status

from app.core.auth import require_permission
from app.core.permissions import Permission
from app.domain.account import (
    Account,
    InstructorPromotionRequest,
    InstructorUpdateRequest,
    ManagerPromotionRequest,
    ManagerUpdateRequest,
)
from app.infrastructure.mongo import StudioStore, get_store
from app.services import staff

instructors_router = APIRouter(prefix="/instructors", tags=["instructors"])
managers_router = APIRouter(prefix="/managers", tags=["managers"])

manage_staff = require_permission(Permission.MANAGE_STAFF)


# -----------------
# INSTRUCTORS
# -----------------

@instructors_router.post("", status_code=status.HTTP_201_CREATED)
def promote_instructor(
    req: InstructorPromotionRequest,
    manager: Account = Depends(manage_staff),
    store: StudioStore = Depends(get_store),
):
    """Promote a registered account to instructor.

    Example:
        POST /api/instructors
        {"accountId": "U00003", "specialties": ["Hatha"]}
    """
    return staff.promote_instructor(store, req)


@instructors_router.get("")
def list_instructors(manager: Account = Depends(manage_staff), store: StudioStore = Depends(get_store)):
    return staff.list_instructors(store)


@instructors_router.get("/ids")
def instructor_ids(manager: Account = Depends(manage_staff), store: StudioStore = Depends(get_store)):
    return staff.instructor_ids(store)


@instructors_router.get("/{instructor_id}")
def get_instructor(
    instructor_id: str,
    manager: Account = Depends(manage_staff),
    store: StudioStore = Depends(get_store),
):
    return staff.get_instructor(store, instructor_id).to_document()


@instructors_router.put("/{instructor_id}")
def update_instructor(
    instructor_id: str,
    req: InstructorUpdateRequest,
    manager: Account = Depends(manage_staff),
    store: StudioStore = Depends(get_store),
):
    return staff.update_instructor(store, instructor_id, req)


@instructors_router.delete("/{instructor_id}")
def demote_instructor(
    instructor_id: str,
    manager: Account = Depends(manage_staff),
    store: StudioStore = Depends(get_store),
):
    return staff.demote_instructor(store, instructor_id)


# -----------------
# MANAGERS
# -----------------

@managers_router.post("", status_code=status.HTTP_201_CREATED)
def promote_manager(
    req: ManagerPromotionRequest,
    manager: Account = Depends(manage_staff),
    store: StudioStore = Depends(get_store),
):
    return staff.promote_manager(store, req)


@managers_router.get("")
def list_managers(manager: Account = Depends(manage_staff), store: StudioStore = Depends(get_store)):
    return staff.list_managers(store)


@managers_router.get("/ids")
def manager_ids(manager: Account = Depends(manage_staff), store: StudioStore = Depends(get_store)):
    return staff.manager_ids(store)


@managers_router.get("/next-id")
def next_manager_id(manager: Account = Depends(manage_staff), store: StudioStore = Depends(get_store)):
    return {"nextId": staff.next_manager_id(store)}


@managers_router.get("/{manager_id}")
def get_manager(
    manager_id: str,
    manager: Account = Depends(manage_staff),
    store: StudioStore = Depends(get_store),
):
    return staff.get_manager(store, manager_id).to_document()


@managers_router.put("/{manager_id}")
def update_manager(
    manager_id: str,
    req: ManagerUpdateRequest,
    manager: Account = Depends(manage_staff),
    store: StudioStore = Depends(get_store),
):
    return staff.update_manager(store, manager_id, req)


@managers_router.delete("/{manager_id}")
def demote_manager(
    manager_id: str,
    manager: Account = Depends(manage_staff),
    store: StudioStore = Depends(get_store),
):
    """Revert a manager to Client. Managers cannot demote themselves."""
    return staff.demote_manager(store, manager, manager_id)
