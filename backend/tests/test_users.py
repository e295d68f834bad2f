"""
User administration tests.

Verifies:
- Administrators manage every account
- User Managers manage non-administrators only
- Password changes revoke the target's sessions
- Nobody deletes their own account
"""

from inventario.extensions import db
from inventario.models import AuditLogEntry, SessionToken, User

from conftest import TEST_PASSWORD, auth_headers, get_auth_token


NEW_USER = {
    "real_name": "Bruna Lima",
    "username": "bruna",
    "email": "bruna@company.com",
    "role": "User/Operador",
    "password": "Bruna@2024",
}


class TestAdminManagement:

    def test_create_user(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers, json=NEW_USER)
        assert resp.status_code == 201
        body = resp.json["user"]
        assert body["username"] == "bruna"
        assert "password_hash" not in body

        assert get_auth_token(client, "bruna", "Bruna@2024")

        entry = db.session.query(AuditLogEntry).filter(AuditLogEntry.target_type == "USER").one()
        assert entry.details == "Created user 'bruna' (User/Operador)"

    def test_duplicate_username(self, client, admin_headers, operator):
        resp = client.post("/api/users", headers=admin_headers, json={**NEW_USER, "username": "operator"})
        assert resp.status_code == 409
        assert resp.json["field"] == "username"

    def test_duplicate_email(self, client, admin_headers, operator):
        resp = client.post("/api/users", headers=admin_headers, json={**NEW_USER, "email": "operator@company.com"})
        assert resp.status_code == 409
        assert resp.json["field"] == "email"

    def test_weak_password(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers, json={**NEW_USER, "password": "weak"})
        assert resp.status_code == 400
        assert db.session.query(User).filter(User.username == "bruna").first() is None

    def test_invalid_role(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers, json={**NEW_USER, "role": "Root"})
        assert resp.status_code == 400

    def test_numeric_looking_edit_is_written(self, client, admin_headers, operator):
        resp = client.put(f"/api/users/{operator.id}", headers=admin_headers, json={"real_name": "007"})
        assert resp.status_code == 200
        resp = client.put(f"/api/users/{operator.id}", headers=admin_headers, json={"real_name": "7"})
        assert resp.status_code == 200

        db.session.expire_all()
        assert db.session.get(User, operator.id).real_name == "7"

    def test_cannot_delete_self(self, client, admin, admin_headers):
        resp = client.delete(f"/api/users/{admin.id}", headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_user_drops_sessions(self, client, admin_headers, operator, operator_headers):
        resp = client.delete(f"/api/users/{operator.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db.session.query(SessionToken).filter(SessionToken.user_id == operator.id).count() == 0
        assert client.get("/api/auth/me", headers=operator_headers).status_code == 401

    def test_password_change_revokes_sessions(self, client, admin_headers, operator, operator_headers):
        assert client.get("/api/auth/me", headers=operator_headers).status_code == 200

        resp = client.put(f"/api/users/{operator.id}", headers=admin_headers, json={"password": "NewPass@2024"})
        assert resp.status_code == 200

        assert client.get("/api/auth/me", headers=operator_headers).status_code == 401
        assert get_auth_token(client, "operator", TEST_PASSWORD) is None
        assert get_auth_token(client, "operator", "NewPass@2024")

    def test_update_fields(self, client, admin_headers, operator):
        resp = client.put(f"/api/users/{operator.id}", headers=admin_headers, json={
            "real_name": "Operadora Chefe",
            "sso_provider": "",
        })
        assert resp.status_code == 200
        assert resp.json["user"]["real_name"] == "Operadora Chefe"
        assert resp.json["user"]["sso_provider"] is None

    def test_admin_disables_2fa(self, client, admin_headers, operator):
        operator.is_2fa_enabled = True
        operator.two_factor_secret = "JBSWY3DPEHPK3PXP"
        db.session.commit()

        resp = client.post(f"/api/users/{operator.id}/disable-2fa", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["is_2fa_enabled"] is False
        assert db.session.get(User, operator.id).two_factor_secret is None


class TestUserManagerScope:

    def test_manager_creates_operator(self, client, manager_headers):
        resp = client.post("/api/users", headers=manager_headers, json=NEW_USER)
        assert resp.status_code == 201

    def test_manager_cannot_create_admin(self, client, manager_headers):
        resp = client.post("/api/users", headers=manager_headers, json={**NEW_USER, "role": "Admin"})
        assert resp.status_code == 403
        assert db.session.query(User).filter(User.username == "bruna").first() is None

    def test_manager_cannot_touch_admin(self, client, admin, manager_headers):
        resp = client.put(f"/api/users/{admin.id}", headers=manager_headers, json={"real_name": "Hacked"})
        assert resp.status_code == 403
        assert client.delete(f"/api/users/{admin.id}", headers=manager_headers).status_code == 403

    def test_manager_cannot_promote(self, client, operator, manager_headers):
        resp = client.put(f"/api/users/{operator.id}", headers=manager_headers, json={"role": "Admin"})
        assert resp.status_code == 403
        db.session.expire_all()
        assert db.session.get(User, operator.id).role == "User/Operador"

    def test_manager_cannot_disable_2fa(self, client, operator, manager_headers):
        resp = client.post(f"/api/users/{operator.id}/disable-2fa", headers=manager_headers)
        assert resp.status_code == 403

    def test_operator_cannot_list_users(self, client, operator_headers):
        assert client.get("/api/users", headers=operator_headers).status_code == 403

    def test_manager_lists_users(self, client, seed, manager_headers):
        resp = client.get("/api/users", headers=manager_headers)
        assert resp.status_code == 200
        assert [u["username"] for u in resp.json["users"]] == ["admin", "manager", "operator"]

    def test_new_user_can_log_in(self, client, manager_headers):
        client.post("/api/users", headers=manager_headers, json=NEW_USER)
        token = get_auth_token(client, "bruna", "Bruna@2024")
        assert client.get("/api/auth/me", headers=auth_headers(token)).json["user"]["role"] == "User/Operador"
