"""Account administration endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.core.auth import get_current_account, require_permission
from app.core.permissions import Permission, Role
from app.domain.account import Account, AccountCreateRequest, AccountUpdateRequest
from app.infrastructure.mongo import StudioStore, get_store
from app.services import accounts

router = APIRouter(prefix="/accounts", tags=["accounts"])

manage_accounts = require_permission(Permission.MANAGE_ACCOUNTS)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_account(
    req: AccountCreateRequest,
    manager: Account = Depends(manage_accounts),
    store: StudioStore = Depends(get_store),
):
    return accounts.create_account(store, req)


@router.get("")
def list_accounts(
    role: Optional[Role] = None,
    manager: Account = Depends(manage_accounts),
    store: StudioStore = Depends(get_store),
):
    """All accounts, optionally filtered by role (Client, Instructor, Manager)."""
    return [account.to_document() for account in accounts.list_accounts(store, role)]


@router.get("/ids/{role}")
def list_account_ids(
    role: Role,
    manager: Account = Depends(manage_accounts),
    store: StudioStore = Depends(get_store),
):
    return accounts.list_account_ids(store, role)


@router.get("/next-id/{role}")
def next_account_id(
    role: Role,
    manager: Account = Depends(manage_accounts),
    store: StudioStore = Depends(get_store),
):
    return {"nextId": accounts.next_account_id(store, role)}


@router.get("/available-for-instructor")
def available_for_instructor(
    manager: Account = Depends(require_permission(Permission.MANAGE_STAFF)),
    store: StudioStore = Depends(get_store),
):
    """Clients that can be promoted to instructor."""
    return [account.summary() for account in accounts.available_for_instructor(store)]


@router.get("/{account_id}")
def get_account(
    account_id: str,
    caller: Account = Depends(get_current_account),
    store: StudioStore = Depends(get_store),
):
    """One account. Clients may only read their own."""
    return accounts.get_account(store, caller, account_id).to_document()


@router.put("/{account_id}")
def update_account(
    account_id: str,
    req: AccountUpdateRequest,
    manager: Account = Depends(manage_accounts),
    store: StudioStore = Depends(get_store),
):
    return accounts.update_account(store, account_id, req)


@router.delete("/{account_id}")
def delete_account(
    account_id: str,
    manager: Account = Depends(manage_accounts),
    store: StudioStore = Depends(get_store),
):
    return accounts.delete_account(store, manager, account_id)
