"""Registration, login and password endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.core.auth import get_current_account, get_optional_account
from app.core.logging import LogTimer, get_logger
from app.domain.account import Account, ChangePasswordRequest, LoginRequest, RegisterRequest
from app.infrastructure.mongo import StudioStore, get_store
from app.services import accounts

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    req: RegisterRequest,
    caller: Optional[Account] = Depends(get_optional_account),
    store: StudioStore = Depends(get_store),
):
    """Register an account.

    Authentication: Optional (required with manager rights for staff roles,
    except the studio's first manager)

    Example:
        POST /api/auth/register
        {"firstName": "Ada", "lastName": "Lee", "email": "ada@example.com",
         "phone": "555-0100", "address": "1 Main St", "password": "secret1"}
    """
    return accounts.register(store, req, caller)


@router.post("/login")
def login(req: LoginRequest, store: StudioStore = Depends(get_store)):
    """Authenticate and return a bearer token."""
    with LogTimer(logger, "account_authentication"):
        return accounts.login(store, req.email, req.password)


@router.post("/change-password")
def change_password(
    req: ChangePasswordRequest,
    account: Account = Depends(get_current_account),
    store: StudioStore = Depends(get_store),
):
    return accounts.change_password(store, account, req.current_password, req.new_password)


@router.get("/profile")
def profile(account: Account = Depends(get_current_account)):
    """Current authenticated account.

    Requires: Authentication
    """
    return {"account": account.to_document()}


@router.post("/logout")
def logout(account: Account = Depends(get_current_account)):
    # Tokens are stateless; the client discards its copy.
    logger.info("Logout", extra={"account_id": account.account_id})
    return {"message": "Logged out successfully"}
