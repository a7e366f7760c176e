"""Promotion and demotion of accounts to instructor and manager roles.

A profile's lifecycle is tied to the account's role: creating the profile
promotes the account, deleting it reverts the account to Client.
"""
from datetime import datetime
from typing import Any, Dict, List

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.permissions import Role
from app.domain.account import (
    Account,
    InstructorProfile,
    InstructorPromotionRequest,
    InstructorUpdateRequest,
    ManagerProfile,
    ManagerPromotionRequest,
    ManagerUpdateRequest,
)
from app.infrastructure.mongo import StudioStore

logger = get_logger(__name__)


def _require_account(store: StudioStore, account_id: str) -> Account:
    account = store.accounts.get(account_id)
    if account is None:
        raise NotFoundError("Account not found. The person must be registered first.")
    return account


def _with_account(store: StudioStore, profile) -> Dict[str, Any]:
    doc = profile.to_document()
    account = store.accounts.get(profile.account_id)
    doc["name"] = account.full_name if account else "Unknown"
    doc["email"] = account.email if account else None
    return doc


# -----------------
# INSTRUCTORS
# -----------------

def promote_instructor(store: StudioStore, payload: InstructorPromotionRequest) -> Dict[str, Any]:
    account = _require_account(store, payload.account_id)
    if store.instructors.by_account(account.account_id):
        raise ConflictError("Account is already an instructor")

    profile = InstructorProfile(
        instructor_id=store.instructors.next_id(),
        account_id=account.account_id,
        specialties=payload.specialties,
        hire_date=payload.hire_date or datetime.utcnow(),
    )
    store.instructors.insert(profile)
    store.accounts.set_role(account.account_id, Role.INSTRUCTOR)

    logger.info(
        f"Account {account.account_id} promoted to instructor {profile.instructor_id}",
        extra={"account_id": account.account_id}
    )
    return {
        "message": "Instructor added successfully",
        "instructorId": profile.instructor_id,
        "instructor": _with_account(store, profile),
    }


def get_instructor(store: StudioStore, instructor_id: str) -> InstructorProfile:
    profile = store.instructors.get(instructor_id)
    if profile is None:
        raise NotFoundError("Instructor not found")
    return profile


def list_instructors(store: StudioStore) -> List[Dict[str, Any]]:
    return [
        _with_account(store, profile)
        for profile in store.instructors.find(sort=[("instructorId", 1)])
    ]


def instructor_ids(store: StudioStore) -> List[Dict[str, str]]:
    return [
        {"instructorId": doc["instructorId"], "accountId": doc["accountId"], "name": doc["name"]}
        for doc in list_instructors(store)
    ]


def update_instructor(store: StudioStore, instructor_id: str, payload: InstructorUpdateRequest) -> Dict[str, Any]:
    get_instructor(store, instructor_id)
    profile = store.instructors.update(instructor_id, payload.model_dump(by_alias=True, exclude_none=True))
    return {"message": "Instructor updated successfully", "instructor": _with_account(store, profile)}


def demote_instructor(store: StudioStore, instructor_id: str) -> Dict[str, Any]:
    profile = get_instructor(store, instructor_id)
    store.instructors.delete(instructor_id)
    store.accounts.set_role(profile.account_id, Role.CLIENT)
    logger.info(f"Instructor {instructor_id} removed", extra={"account_id": profile.account_id})
    return {"message": "Instructor removed successfully", "instructorId": instructor_id}


# -----------------
# MANAGERS
# -----------------

def promote_manager(store: StudioStore, payload: ManagerPromotionRequest) -> Dict[str, Any]:
    account = _require_account(store, payload.account_id)
    if store.managers.by_account(account.account_id):
        raise ConflictError("Account is already a manager")

    profile = ManagerProfile(
        manager_id=store.managers.next_id(),
        account_id=account.account_id,
        department=payload.department or "Operations",
    )
    store.managers.insert(profile)
    store.accounts.set_role(account.account_id, Role.MANAGER)

    logger.info(
        f"Account {account.account_id} promoted to manager {profile.manager_id}",
        extra={"account_id": account.account_id}
    )
    return {
        "message": "Manager created successfully",
        "managerId": profile.manager_id,
        "manager": _with_account(store, profile),
    }


def get_manager(store: StudioStore, manager_id: str) -> ManagerProfile:
    profile = store.managers.get(manager_id)
    if profile is None:
        raise NotFoundError("Manager not found")
    return profile


def list_managers(store: StudioStore) -> List[Dict[str, Any]]:
    return [
        _with_account(store, profile)
        for profile in store.managers.find(sort=[("managerId", 1)])
    ]


def manager_ids(store: StudioStore) -> List[Dict[str, str]]:
    return [
        {"managerId": doc["managerId"], "accountId": doc["accountId"], "name": doc["name"]}
        for doc in list_managers(store)
    ]


def next_manager_id(store: StudioStore) -> str:
    return store.managers.next_id()


def update_manager(store: StudioStore, manager_id: str, payload: ManagerUpdateRequest) -> Dict[str, Any]:
    get_manager(store, manager_id)
    profile = store.managers.update(manager_id, payload.model_dump(by_alias=True, exclude_none=True))
    return {"message": "Manager updated successfully", "manager": _with_account(store, profile)}


def demote_manager(store: StudioStore, caller: Account, manager_id: str) -> Dict[str, Any]:
    profile = get_manager(store, manager_id)
    if profile.account_id == caller.account_id:
        raise ValidationError("Managers cannot remove their own manager role")

    store.managers.delete(manager_id)
    store.accounts.set_role(profile.account_id, Role.CLIENT)
    logger.info(f"Manager {manager_id} removed", extra={"account_id": profile.account_id})
    return {"message": "Manager deleted and account role updated", "managerId": manager_id}
