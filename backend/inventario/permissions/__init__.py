# Overview: Permission system package.
# Re-exports the public API used by the policy service and decorators.

from .categories import Action, Resource, permission_code
from .definitions import (
    PERMISSION_DEFINITIONS,
    EQUIPMENT_PERMISSIONS,
    LICENSE_PERMISSIONS,
    USER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_resource,
    get_permission_definition,
    validate_permission_code,
)

__all__ = [
    "Action",
    "Resource",
    "permission_code",
    "PERMISSION_DEFINITIONS",
    "EQUIPMENT_PERMISSIONS",
    "LICENSE_PERMISSIONS",
    "USER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_resource",
    "get_permission_definition",
    "validate_permission_code",
]
