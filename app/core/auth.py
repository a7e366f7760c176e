"""Authentication and authorization dependencies for the studio API.

Implements bcrypt password hashing, JWT bearer tokens, and capability-based
access control. The caller's role is always re-read from the stored account,
so promotions and demotions apply to tokens that are already issued.
"""
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from app.core.logging import get_logger
from app.core.config import settings, DEVELOPMENT_SECRET
from app.core.permissions import Permission, authorize
from app.domain.account import Account
from app.infrastructure.mongo import StudioStore, get_store

logger = get_logger(__name__)

# JWT Configuration from settings
SECRET_KEY = settings.jwt_secret_key
ALGORITHM = settings.jwt_algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes

# Production security check
if settings.is_production:
    if SECRET_KEY == DEVELOPMENT_SECRET:
        raise ValueError("JWT_SECRET_KEY must be set to a secure value in production!")
    if len(SECRET_KEY) < 32:
        logger.warning("JWT_SECRET_KEY should be at least 32 characters for security")

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72

# Security scheme
security = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    """JWT token payload."""
    sub: str  # Account ID
    email: str
    role: str
    exp: datetime
    iat: Optional[datetime] = None


# -----------------
# PASSWORDS
# -----------------

def _to_bcrypt_secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash as a UTF-8 string."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_to_bcrypt_secret(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


# -----------------
# TOKENS
# -----------------

def create_access_token(
    account: Account,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token for an account.

    Args:
        account: Authenticated account
        expires_delta: Token lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    issued = datetime.utcnow()
    expire = issued + expires_delta

    payload = {
        "sub": account.account_id,
        "email": account.email,
        "role": account.role,
        "exp": expire,
        "iat": issued,
    }

    token = jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)

    logger.info(
        f"Access token created for {account.email}",
        extra={"account_id": account.account_id, "role": account.role}
    )

    return token


def decode_token(token: str) -> TokenData:
    """Decode and validate JWT token.

    Raises:
        HTTPException: 401 if token is invalid or expired
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])

        return TokenData(
            sub=payload.get("sub"),
            email=payload.get("email"),
            role=payload.get("role"),
            exp=datetime.utcfromtimestamp(payload.get("exp")),
            iat=datetime.utcfromtimestamp(payload["iat"]) if payload.get("iat") else None,
        )

    except jwt.ExpiredSignatureError:
        logger.warning("Expired token attempted")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )

    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token attempted: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


# -----------------
# DEPENDENCIES
# -----------------

def _account_from_credentials(
    credentials: HTTPAuthorizationCredentials,
    store: StudioStore,
) -> Account:
    token_data = decode_token(credentials.credentials)
    account = store.accounts.get(token_data.sub)
    if account is None:
        logger.warning("Token for unknown account", extra={"account_id": token_data.sub})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )
    logger.debug(f"Account authenticated: {account.email}", extra={"account_id": account.account_id})
    return account


def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: StudioStore = Depends(get_store),
) -> Account:
    """FastAPI dependency returning the authenticated account (401 without a token).

    Example:
        >>> @router.get("/protected")
        >>> def protected_route(account: Account = Depends(get_current_account)):
        ...     return {"accountId": account.account_id}
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _account_from_credentials(credentials, store)


def get_optional_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: StudioStore = Depends(get_store),
) -> Optional[Account]:
    """Like ``get_current_account`` but returns None when no token is sent."""
    if credentials is None:
        return None
    return _account_from_credentials(credentials, store)


def require_permission(permission: Permission):
    """Dependency factory for capability-based access control.

    Example:
        >>> @router.get("/reports/performance")
        >>> def report(account: Account = Depends(require_permission(Permission.VIEW_REPORTS))):
        ...     ...
    """
    def permission_checker(account: Account = Depends(get_current_account)) -> Account:
        authorize(account, permission)
        return account

    return permission_checker
