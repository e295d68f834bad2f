# Overview: Service-layer authorization policy; one function decides every capability.

"""
Permission Checking

Every privileged route and service operation asks the same question:
is_allowed(role, action, resource). The answer comes from the static
role -> permission table in inventario.permissions.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and unknown codes are denied
- Log denials only: grants are not logged
"""

from __future__ import annotations

import logging

from ..errors import PermissionDeniedError
from ..models import User
from ..permissions import DEFAULT_ROLE_PERMISSIONS, permission_code


logger = logging.getLogger(__name__)


def get_role_permissions(role: str | None) -> frozenset[str]:
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())


def is_allowed(role: str | None, action: str, resource: str) -> bool:
    """True when the role holds the ACTION_RESOURCE permission."""
    return permission_code(action, resource) in get_role_permissions(role)


def require_permission(actor: User, action: str, resource: str) -> None:
    """
    Raise PermissionDeniedError unless the actor may perform action on resource.

    The denial is logged with the username and the missing code, never with
    request payloads.
    """
    if actor is not None and is_allowed(actor.role, action, resource):
        return
    code = permission_code(action, resource)
    logger.warning(
        "Permission denied: user=%s role=%s missing=%s",
        getattr(actor, "username", None),
        getattr(actor, "role", None),
        code,
    )
    raise PermissionDeniedError(f"Missing permission: {code}")
