"""Pass catalogue and purchase endpoints.

The ``/owned`` routes are declared before ``/{pass_id}`` so they are not
captured as pass ids.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.core.auth import require_permission
from app.core.permissions import Permission
from app.domain.account import Account
from app.domain.passes import PassCreateRequest, PassUpdateRequest, PaymentMethod, PurchaseRequest
from app.infrastructure.mongo import StudioStore, get_store
from app.services import passes

router = APIRouter(prefix="/passes", tags=["passes"])

manage_passes = require_permission(Permission.MANAGE_PASSES)
purchase_pass = require_permission(Permission.PURCHASE_PASS)


@router.get("")
def list_passes(store: StudioStore = Depends(get_store)):
    """Active pass definitions, cheapest first. Public."""
    return passes.list_active_definitions(store)


# -----------------
# OWNED PASSES
# -----------------

@router.get("/owned")
def owned_passes(account: Account = Depends(purchase_pass), store: StudioStore = Depends(get_store)):
    return passes.owned_passes(store, account)


@router.get("/owned/active")
def active_owned_passes(account: Account = Depends(purchase_pass), store: StudioStore = Depends(get_store)):
    """Passes that are active, unexpired and have sessions left."""
    return passes.active_owned_passes(store, account)


@router.get("/owned/check-valid")
def check_valid_pass(account: Account = Depends(purchase_pass), store: StudioStore = Depends(get_store)):
    return passes.check_valid_pass(store, account)


# -----------------
# DEFINITIONS
# -----------------

@router.get("/{pass_id}")
def get_pass(pass_id: str, store: StudioStore = Depends(get_store)):
    return passes.get_definition(store, pass_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_pass(
    req: PassCreateRequest,
    manager: Account = Depends(manage_passes),
    store: StudioStore = Depends(get_store),
):
    return passes.create_definition(store, manager, req)


@router.put("/{pass_id}")
def update_pass(
    pass_id: str,
    req: PassUpdateRequest,
    manager: Account = Depends(manage_passes),
    store: StudioStore = Depends(get_store),
):
    return passes.update_definition(store, pass_id, req)


@router.delete("/{pass_id}")
def delete_pass(
    pass_id: str,
    manager: Account = Depends(manage_passes),
    store: StudioStore = Depends(get_store),
):
    """Remove a pass, or deactivate it when it has already been sold."""
    return passes.delete_definition(store, pass_id)


@router.post("/{pass_id}/purchase", status_code=status.HTTP_201_CREATED)
def purchase(
    pass_id: str,
    req: Optional[PurchaseRequest] = None,
    account: Account = Depends(purchase_pass),
    store: StudioStore = Depends(get_store),
):
    """Buy a pass. Payment is always approved (no gateway).

    Example:
        POST /api/passes/P00001/purchase
        {"paymentMethod": "credit_card"}
    """
    method = req.payment_method if req else PaymentMethod.MOCK
    return passes.purchase(store, account, pass_id, method)
