# Overview: Resource and action constants the authorization policy is keyed on.


class Resource:
    """Protected resources, also used to group permissions for UI display."""
    EQUIPMENT = "EQUIPMENT"
    LICENSE = "LICENSE"
    LICENSE_TOTAL = "LICENSE_TOTAL"
    USER = "USER"
    AUDIT_LOG = "AUDIT_LOG"
    DATABASE = "DATABASE"
    INTEGRATION = "INTEGRATION"
    SETTINGS = "SETTINGS"


class Action:
    VIEW = "VIEW"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    MANAGE = "MANAGE"


def permission_code(action: str, resource: str) -> str:
    """Permission codes are ACTION_RESOURCE, e.g. APPROVE_EQUIPMENT."""
    return f"{action}_{resource}"
