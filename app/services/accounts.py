"""Account lifecycle: registration, login, passwords, and manager administration."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.auth import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    hash_password,
    verify_password,
)
from app.core.config import settings
from app.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.permissions import Permission, Role, authorize, has_permission
from app.domain.account import (
    Account,
    AccountCreateRequest,
    AccountFields,
    AccountUpdateRequest,
    InstructorProfile,
    ManagerProfile,
    RegisterRequest,
)
from app.infrastructure.mongo import StudioStore

logger = get_logger(__name__)


def _check_password_strength(password: str, label: str = "Password") -> None:
    if len(password) < settings.min_password_length:
        raise ValidationError(
            f"{label} must be at least {settings.min_password_length} characters long"
        )


def _ensure_email_free(store: StudioStore, email: str, exclude_account_id: Optional[str] = None) -> None:
    existing = store.accounts.by_email(email)
    if existing and existing.account_id != exclude_account_id:
        raise ConflictError("Email already exists")


def _create_role_profile(store: StudioStore, account: Account) -> None:
    """Create the Instructor/Manager extension record matching the account's role."""
    if account.role == Role.INSTRUCTOR:
        store.instructors.insert(InstructorProfile(
            instructor_id=store.instructors.next_id(),
            account_id=account.account_id,
        ))
    elif account.role == Role.MANAGER:
        store.managers.insert(ManagerProfile(
            manager_id=store.managers.next_id(),
            account_id=account.account_id,
        ))


def _create_account(store: StudioStore, fields: AccountFields, role, password: Optional[str]) -> Account:
    _ensure_email_free(store, fields.email)
    account = Account(
        account_id=store.accounts.next_id_for_role(role),
        role=role,
        **fields.model_dump(include=set(AccountFields.model_fields)),
    )
    store.accounts.insert(account)
    if password:
        store.credentials.set_hash(account.account_id, hash_password(password))
    _create_role_profile(store, account)
    logger.info(account.welcome_message(), extra={"account_id": account.account_id, "role": account.role})
    return account


# -----------------
# SELF SERVICE
# -----------------

def register(store: StudioStore, payload: RegisterRequest, caller: Optional[Account] = None) -> Dict[str, Any]:
    """Register an account with a password.

    Anyone may register a Client. Staff roles need a manager caller, except
    the first Manager of a studio that has none yet.

    Raises:
        ValidationError: Password too short
        PermissionDeniedError: Staff role requested without manager rights
        ConflictError: Email already registered
    """
    _check_password_strength(payload.password)

    role = Role(payload.role)
    if role != Role.CLIENT and not (caller and has_permission(caller.role, Permission.MANAGE_ACCOUNTS)):
        bootstrap = role == Role.MANAGER and store.accounts.count({"role": Role.MANAGER.value}) == 0
        if not bootstrap:
            raise PermissionDeniedError(f"Only managers can register {role.value} accounts")
        logger.info("Bootstrapping first studio manager")

    account = _create_account(store, payload, role, payload.password)
    return {
        "message": f"{role.value} registered successfully",
        "accountId": account.account_id,
        "account": account.summary(),
    }


def login(store: StudioStore, email: str, password: str) -> Dict[str, Any]:
    """Check credentials and issue a bearer token.

    Raises:
        AuthenticationError: Unknown email, no active credential, or wrong password
    """
    account = store.accounts.by_email(email)
    credential = store.credentials.active_for(account.account_id) if account else None
    if not account or not credential or not verify_password(password, credential.password_hash):
        logger.warning(f"Failed login attempt for {email}")
        raise AuthenticationError("Invalid email or password")

    return {
        "message": "Login successful",
        "accessToken": create_access_token(account),
        "tokenType": "bearer",
        "expiresIn": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "account": account.summary(),
    }


def change_password(store: StudioStore, caller: Account, current_password: str, new_password: str) -> Dict[str, Any]:
    _check_password_strength(new_password, "New password")

    credential = store.credentials.active_for(caller.account_id)
    if credential is None:
        raise AuthenticationError("No active password found")
    if not verify_password(current_password, credential.password_hash):
        raise AuthenticationError("Current password is incorrect")

    store.credentials.set_hash(caller.account_id, hash_password(new_password))
    logger.info("Password changed", extra={"account_id": caller.account_id})
    return {"message": "Password changed successfully", "accountId": caller.account_id}


# -----------------
# ADMINISTRATION
# -----------------

def create_account(store: StudioStore, payload: AccountCreateRequest) -> Dict[str, Any]:
    if payload.password:
        _check_password_strength(payload.password)
    role = Role(payload.role)
    account = _create_account(store, payload, role, payload.password)
    return {
        "message": f"{role.value} created successfully",
        "accountId": account.account_id,
        "account": account.to_document(),
    }


def get_account(store: StudioStore, caller: Account, account_id: str) -> Account:
    if caller.account_id != account_id:
        authorize(caller, Permission.MANAGE_ACCOUNTS)
    account = store.accounts.get(account_id)
    if account is None:
        raise NotFoundError("Account not found")
    return account


def list_accounts(store: StudioStore, role: Optional[Role] = None) -> List[Account]:
    if role is not None:
        return store.accounts.by_role(role)
    return store.accounts.find(sort=[("accountId", 1)])


def list_account_ids(store: StudioStore, role: Role) -> List[Dict[str, str]]:
    return [
        {"accountId": account.account_id, "name": account.full_name}
        for account in store.accounts.by_role(role)
    ]


def next_account_id(store: StudioStore, role: Role) -> str:
    return store.accounts.next_id_for_role(role)


def available_for_instructor(store: StudioStore) -> List[Account]:
    """Clients that could be promoted to instructor."""
    return store.accounts.by_role(Role.CLIENT)


def update_account(store: StudioStore, account_id: str, payload: AccountUpdateRequest) -> Dict[str, Any]:
    if store.accounts.get(account_id) is None:
        raise NotFoundError("Account not found")

    changes = payload.model_dump(by_alias=True, exclude_none=True)
    if "email" in changes:
        _ensure_email_free(store, changes["email"], exclude_account_id=account_id)
    changes["updatedAt"] = datetime.utcnow()

    account = store.accounts.update(account_id, changes)
    return {"message": "Account updated successfully", "account": account.to_document()}


def delete_account(store: StudioStore, caller: Account, account_id: str) -> Dict[str, Any]:
    """Remove an account together with its credential and any staff profile."""
    if caller.account_id == account_id:
        raise ValidationError("You cannot delete your own account")

    account = store.accounts.get(account_id)
    if account is None:
        raise NotFoundError("Account not found")

    store.accounts.delete(account_id)
    store.credentials.delete(account_id)
    instructor = store.instructors.by_account(account_id)
    if instructor:
        store.instructors.delete(instructor.instructor_id)
    manager = store.managers.by_account(account_id)
    if manager:
        store.managers.delete(manager.manager_id)

    logger.info(f"Account {account_id} deleted", extra={"account_id": account_id})
    return {"message": f"{account.role} deleted successfully", "accountId": account_id}
