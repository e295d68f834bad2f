"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Operators are denied administrative operations (403)
- The role table is consistent with the permission catalogue
"""

import pytest

from inventario.models import UserRole
from inventario.permissions import (
    Action,
    DEFAULT_ROLE_PERMISSIONS,
    Resource,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_resource,
    validate_permission_code,
)
from inventario.services import permission_service


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/api/equipment"),
        ("POST", "/api/equipment"),
        ("GET", "/api/licenses"),
        ("GET", "/api/licenses/stats"),
        ("GET", "/api/users"),
        ("GET", "/api/approvals"),
        ("POST", "/api/approvals/approve"),
        ("GET", "/api/audit-log"),
        ("GET", "/api/database/status"),
        ("POST", "/api/database/backup"),
        ("GET", "/api/settings"),
        ("POST", "/api/integrations/absolute/sync"),
        ("GET", "/api/auth/me"),
    ],
)
def test_requires_auth(client, seed, method, path):
    resp = getattr(client, method.lower())(path)
    assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# OPERATOR DENIED ADMINISTRATIVE OPERATIONS: 403
# =============================================================================


class TestOperatorDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/audit-log"),
            ("GET", "/api/users"),
            ("PUT", "/api/settings"),
            ("DELETE", "/api/equipment/1"),
            ("DELETE", "/api/licenses/1"),
            ("PUT", "/api/licenses/totals"),
            ("POST", "/api/database/restore"),
            ("POST", "/api/integrations/absolute/config"),
        ],
    )
    def test_forbidden(self, client, operator_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=operator_headers, json={})
        assert resp.status_code == 403
        assert resp.json["error"] == "Permission denied"

    def test_operator_reads_inventory(self, client, operator_headers):
        assert client.get("/api/equipment", headers=operator_headers).status_code == 200
        assert client.get("/api/licenses", headers=operator_headers).status_code == 200
        assert client.get("/api/settings", headers=operator_headers).status_code == 200


# =============================================================================
# POLICY TABLE
# =============================================================================


class TestPolicy:

    def test_admin_holds_everything(self):
        assert DEFAULT_ROLE_PERMISSIONS[UserRole.ADMIN] == frozenset(get_all_permission_codes())

    def test_role_codes_are_known(self):
        for role, codes in DEFAULT_ROLE_PERMISSIONS.items():
            unknown = [code for code in codes if not validate_permission_code(code)]
            assert unknown == [], f"{role} holds unknown codes {unknown}"

    def test_user_manager_extends_operator(self):
        operator = DEFAULT_ROLE_PERMISSIONS[UserRole.OPERATOR]
        manager = DEFAULT_ROLE_PERMISSIONS[UserRole.USER_MANAGER]
        assert operator < manager
        assert "MANAGE_USER" not in manager

    @pytest.mark.parametrize(
        "role,action,resource,allowed",
        [
            (UserRole.OPERATOR, Action.CREATE, Resource.EQUIPMENT, True),
            (UserRole.OPERATOR, Action.UPDATE, Resource.EQUIPMENT, False),
            (UserRole.OPERATOR, Action.APPROVE, Resource.LICENSE, False),
            (UserRole.USER_MANAGER, Action.DELETE, Resource.USER, True),
            (UserRole.USER_MANAGER, Action.MANAGE, Resource.DATABASE, False),
            (UserRole.ADMIN, Action.MANAGE, Resource.INTEGRATION, True),
            ("Root", Action.VIEW, Resource.EQUIPMENT, False),
            (None, Action.VIEW, Resource.EQUIPMENT, False),
        ],
    )
    def test_is_allowed(self, role, action, resource, allowed):
        assert permission_service.is_allowed(role, action, resource) is allowed

    def test_catalogue_lookups(self):
        assert get_permission_definition("MANAGE_LICENSE_TOTAL")["resource"] == Resource.LICENSE_TOTAL
        assert get_permission_definition("FLY") is None
        assert [p[0] for p in get_permissions_by_resource(Resource.SETTINGS)] == ["VIEW_SETTINGS", "MANAGE_SETTINGS"]
