"""Pass definitions (manager-maintained products) and pass purchases."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.domain.account import Account
from app.domain.passes import (
    OwnedPass,
    PassCreateRequest,
    PassDefinition,
    PassUpdateRequest,
    PaymentMethod,
    PaymentStatus,
)
from app.infrastructure.mongo import StudioStore

logger = get_logger(__name__)


def _definition_doc(definition: Optional[PassDefinition]) -> Optional[Dict[str, Any]]:
    if definition is None:
        return None
    doc = definition.to_document()
    doc["formattedDuration"] = definition.formatted_duration()
    return doc


def _owned_with_definition(store: StudioStore, owned: OwnedPass, now: datetime) -> Dict[str, Any]:
    doc = owned.to_document()
    doc["daysRemaining"] = owned.days_remaining(now)
    doc["isUsable"] = owned.is_usable(now)
    doc["pass"] = _definition_doc(store.passes.get(owned.pass_id))
    return doc


# -----------------
# DEFINITIONS
# -----------------

def list_active_definitions(store: StudioStore) -> List[Dict[str, Any]]:
    return [_definition_doc(definition) for definition in store.passes.active()]


def get_definition(store: StudioStore, pass_id: str) -> Dict[str, Any]:
    definition = store.passes.get_active(pass_id)
    if definition is None:
        raise NotFoundError("Pass not found")
    return _definition_doc(definition)


def create_definition(store: StudioStore, caller: Account, payload: PassCreateRequest) -> Dict[str, Any]:
    definition = PassDefinition(
        pass_id=store.passes.next_id(),
        name=payload.name,
        description=payload.description,
        duration=payload.duration,
        sessions=payload.sessions,
        price=payload.price,
        created_by=caller.account_id,
    )
    store.passes.insert(definition)
    logger.info(
        f"Pass {definition.pass_id} created",
        extra={"account_id": caller.account_id, "pass_id": definition.pass_id}
    )
    return {"message": "Pass created successfully", "pass": _definition_doc(definition)}


def update_definition(store: StudioStore, pass_id: str, payload: PassUpdateRequest) -> Dict[str, Any]:
    if store.passes.get(pass_id) is None:
        raise NotFoundError("Pass not found")

    changes = payload.model_dump(by_alias=True, exclude_none=True)
    changes["updatedAt"] = datetime.utcnow()
    definition = store.passes.update(pass_id, changes)
    return {"message": "Pass updated successfully", "pass": _definition_doc(definition)}


def delete_definition(store: StudioStore, pass_id: str) -> Dict[str, Any]:
    """Deactivate a purchased definition; remove one nobody has bought."""
    definition = store.passes.get(pass_id)
    if definition is None:
        raise NotFoundError("Pass not found")

    if store.owned_passes.references_definition(pass_id):
        definition = store.passes.update(pass_id, {"isActive": False, "updatedAt": datetime.utcnow()})
        logger.info(f"Pass {pass_id} deactivated", extra={"pass_id": pass_id})
        return {"message": "Pass deactivated successfully", "deleted": False, "pass": _definition_doc(definition)}

    store.passes.delete(pass_id)
    logger.info(f"Pass {pass_id} removed", extra={"pass_id": pass_id})
    return {"message": "Pass deleted successfully", "deleted": True, "passId": pass_id}


# -----------------
# PURCHASES
# -----------------

def expiration_for(definition: PassDefinition, start: datetime) -> datetime:
    return start + timedelta(days=definition.duration_in_days())


def purchase(
    store: StudioStore,
    caller: Account,
    pass_id: str,
    payment_method: PaymentMethod = PaymentMethod.MOCK,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Buy a pass. Payment is mock-approved; every call creates a new OwnedPass.

    Raises:
        NotFoundError: Unknown or inactive pass definition
    """
    definition = store.passes.get_active(pass_id)
    if definition is None:
        raise NotFoundError("Pass not found or not available")

    start = now or datetime.utcnow()
    owned = OwnedPass(
        owned_pass_id=store.owned_passes.next_id(),
        account_id=caller.account_id,
        pass_id=definition.pass_id,
        purchase_date=start,
        start_date=start,
        expiration_date=expiration_for(definition, start),
        sessions_remaining=definition.sessions,
        total_sessions=definition.sessions,
        purchase_price=definition.price,
        payment_method=payment_method,
        payment_status=PaymentStatus.COMPLETED,
    )
    store.owned_passes.insert(owned)

    logger.info(
        f"Pass {definition.pass_id} purchased as {owned.owned_pass_id}",
        extra={"account_id": caller.account_id, "pass_id": definition.pass_id}
    )
    return {
        "message": "Pass purchased successfully",
        "ownedPass": owned.to_document(),
        "pass": _definition_doc(definition),
        "account": {"name": caller.full_name, "email": caller.email},
    }


def owned_passes(store: StudioStore, caller: Account, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    owned = store.owned_passes.for_account(caller.account_id)
    if not owned:
        return {"message": "No passes found", "ownedPasses": []}
    return {"ownedPasses": [_owned_with_definition(store, item, now) for item in owned]}


def active_owned_passes(store: StudioStore, caller: Account, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = now or datetime.utcnow()
    return [
        _owned_with_definition(store, item, now)
        for item in store.owned_passes.usable_for_account(caller.account_id, now)
    ]


def check_valid_pass(store: StudioStore, caller: Account, now: Optional[datetime] = None) -> Dict[str, Any]:
    active = active_owned_passes(store, caller, now)
    return {"hasValidPass": bool(active), "activePasses": active}
