# Overview: All permission definitions organized by resource.
# Each permission is defined as: (code, name, description, resource)

from .categories import Resource


# -- INVENTORY --

EQUIPMENT_PERMISSIONS = [
    ("VIEW_EQUIPMENT", "View Equipment", "List equipment and its change history", Resource.EQUIPMENT),
    ("CREATE_EQUIPMENT", "Create Equipment", "Register equipment (pending approval unless administrator)", Resource.EQUIPMENT),
    ("UPDATE_EQUIPMENT", "Update Equipment", "Edit equipment records", Resource.EQUIPMENT),
    ("DELETE_EQUIPMENT", "Delete Equipment", "Delete equipment records and their history", Resource.EQUIPMENT),
    ("APPROVE_EQUIPMENT", "Approve Equipment", "Approve or reject pending equipment", Resource.EQUIPMENT),
    ("MANAGE_EQUIPMENT", "Import Equipment", "Replace the equipment inventory from a file", Resource.EQUIPMENT),
]


# -- LICENSES --

LICENSE_PERMISSIONS = [
    ("VIEW_LICENSE", "View Licenses", "List software licenses", Resource.LICENSE),
    ("CREATE_LICENSE", "Create License", "Register licenses (pending approval unless administrator)", Resource.LICENSE),
    ("UPDATE_LICENSE", "Update License", "Edit license records", Resource.LICENSE),
    ("DELETE_LICENSE", "Delete License", "Delete license records", Resource.LICENSE),
    ("APPROVE_LICENSE", "Approve License", "Approve or reject pending licenses", Resource.LICENSE),
    ("MANAGE_LICENSE", "Manage Products", "Import licenses and rename products", Resource.LICENSE),
    ("VIEW_LICENSE_TOTAL", "View License Totals", "View contracted, used and available seats", Resource.LICENSE_TOTAL),
    ("MANAGE_LICENSE_TOTAL", "Manage License Totals", "Set contracted seat counts per product", Resource.LICENSE_TOTAL),
]


# -- USERS --

USER_PERMISSIONS = [
    ("VIEW_USER", "View Users", "List user accounts", Resource.USER),
    ("CREATE_USER", "Create User", "Create non-administrator accounts", Resource.USER),
    ("UPDATE_USER", "Update User", "Edit non-administrator accounts", Resource.USER),
    ("DELETE_USER", "Delete User", "Delete non-administrator accounts", Resource.USER),
    ("MANAGE_USER", "Manage Administrators", "Manage administrator accounts and override 2FA", Resource.USER),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    ("VIEW_AUDIT_LOG", "View Audit Log", "Read the global audit trail", Resource.AUDIT_LOG),
    ("VIEW_DATABASE", "View Database Status", "Read database connectivity status", Resource.DATABASE),
    ("MANAGE_DATABASE", "Manage Database", "Backup, restore and reset the database", Resource.DATABASE),
    ("VIEW_INTEGRATION", "View Integrations", "Read the external inventory", Resource.INTEGRATION),
    ("MANAGE_INTEGRATION", "Manage Integrations", "Configure and run the external inventory sync", Resource.INTEGRATION),
    ("VIEW_SETTINGS", "View Settings", "Read application settings", Resource.SETTINGS),
    ("MANAGE_SETTINGS", "Manage Settings", "Change application settings", Resource.SETTINGS),
]


PERMISSION_DEFINITIONS = (
    EQUIPMENT_PERMISSIONS
    + LICENSE_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
