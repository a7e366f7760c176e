"""Roles and the capabilities they grant.

Every authorization decision goes through ``has_permission``/``authorize``;
callers never compare role strings or inspect identifier prefixes.
"""
from enum import Enum
from typing import Dict, FrozenSet

from app.core.errors import PermissionDeniedError


class Role(str, Enum):
    CLIENT = "Client"
    INSTRUCTOR = "Instructor"
    MANAGER = "Manager"

    @property
    def id_prefix(self) -> str:
        return ROLE_ID_PREFIXES[self]


ROLE_ID_PREFIXES: Dict[Role, str] = {
    Role.CLIENT: "U",
    Role.INSTRUCTOR: "I",
    Role.MANAGER: "M",
}


class Permission(str, Enum):
    MANAGE_ACCOUNTS = "manage_accounts"
    MANAGE_STAFF = "manage_staff"
    MANAGE_CLASSES = "manage_classes"
    MANAGE_PASSES = "manage_passes"
    VIEW_REPORTS = "view_reports"
    TAKE_ATTENDANCE = "take_attendance"
    PURCHASE_PASS = "purchase_pass"
    REGISTER_FOR_CLASS = "register_for_class"


_CLIENT_PERMISSIONS = frozenset({Permission.PURCHASE_PASS, Permission.REGISTER_FOR_CLASS})

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.CLIENT: _CLIENT_PERMISSIONS,
    Role.INSTRUCTOR: _CLIENT_PERMISSIONS | {Permission.TAKE_ATTENDANCE},
    Role.MANAGER: frozenset(Permission),
}


def permissions_for(role) -> FrozenSet[Permission]:
    return ROLE_PERMISSIONS[Role(role)]


def has_permission(role, permission: Permission) -> bool:
    """Return True when ``role`` (a Role or its string value) grants ``permission``."""
    try:
        return permission in permissions_for(role)
    except ValueError:
        return False


def authorize(account, permission: Permission) -> None:
    """Raise PermissionDeniedError unless the account's role grants ``permission``."""
    if not has_permission(account.role, permission):
        raise PermissionDeniedError(
            f"Access denied. {permission.value.replace('_', ' ').capitalize()} permission required.",
            requiredPermission=permission.value,
        )
