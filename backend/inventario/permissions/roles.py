# Overview: Static role -> permission table consulted by the authorization policy.

from ..models.users import UserRole
from .helpers import get_all_permission_codes


_OPERATOR = {
    "VIEW_EQUIPMENT",
    "CREATE_EQUIPMENT",
    "VIEW_LICENSE",
    "CREATE_LICENSE",
    "VIEW_LICENSE_TOTAL",
    "VIEW_INTEGRATION",
    "VIEW_SETTINGS",
}

_USER_MANAGER = _OPERATOR | {
    "VIEW_USER",
    "CREATE_USER",
    "UPDATE_USER",
    "DELETE_USER",
}

DEFAULT_ROLE_PERMISSIONS = {
    UserRole.ADMIN: frozenset(get_all_permission_codes()),
    UserRole.USER_MANAGER: frozenset(_USER_MANAGER),
    UserRole.OPERATOR: frozenset(_OPERATOR),
}
