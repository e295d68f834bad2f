"""
External inventory (Absolute) integration tests.

Verifies:
- Credentials are stored through settings and never echoed back
- Sync inserts unknown devices and overwrites matched ones with history
- A repeated sync over unchanged data reports nothing added or updated
"""

from inventario.extensions import db
from inventario.models import AuditLogEntry, Equipment, EquipmentHistory
from inventario.services import inventory_sync_service, settings_service


TOKEN_ID = "token-1234567890"
SECRET_KEY = "secret-1234567890"


def _configure(client, headers, **extra):
    return client.post("/api/integrations/absolute/config", headers=headers, json={
        "token_id": TOKEN_ID,
        "secret_key": SECRET_KEY,
        **extra,
    })


class TestConfiguration:

    def test_save_and_read_masked(self, client, admin_headers):
        resp = _configure(client, admin_headers, sync_interval_hours=6)
        assert resp.status_code == 200
        assert resp.json["configured"] is True
        assert resp.json["sync_interval_hours"] == 6

        resp = client.get("/api/integrations/absolute/config", headers=admin_headers)
        assert resp.json == {
            "configured": True,
            "token_id": settings_service.MASK,
            "secret_key": settings_service.MASK,
            "sync_interval_hours": 6,
        }
        assert settings_service.get_integration_config().token_id == TOKEN_ID

    def test_missing_credentials(self, client, admin_headers):
        resp = client.post("/api/integrations/absolute/config", headers=admin_headers, json={"token_id": TOKEN_ID})
        assert resp.status_code == 400

    def test_negative_interval(self, client, admin_headers):
        resp = _configure(client, admin_headers, sync_interval_hours=-1)
        assert resp.status_code == 400

    def test_connection_check(self, client, admin_headers):
        resp = client.post("/api/integrations/absolute/test", headers=admin_headers, json={
            "token_id": "short",
            "secret_key": "short",
        })
        assert resp.status_code == 401

        resp = client.post("/api/integrations/absolute/test", headers=admin_headers, json={
            "token_id": TOKEN_ID,
            "secret_key": SECRET_KEY,
        })
        assert resp.status_code == 200
        assert resp.json["success"] is True

    def test_connection_check_uses_saved_credentials(self, client, admin_headers):
        _configure(client, admin_headers)
        resp = client.post("/api/integrations/absolute/test", headers=admin_headers, json={})
        assert resp.status_code == 200


class TestSync:

    def test_sync_requires_credentials(self, client, admin_headers):
        resp = client.post("/api/integrations/absolute/sync", headers=admin_headers)
        assert resp.status_code == 400
        assert db.session.query(Equipment).count() == 0

    def test_first_sync_inserts_devices(self, client, admin_headers):
        _configure(client, admin_headers)

        resp = client.post("/api/integrations/absolute/sync", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json == {"added": 3, "updated": 0}

        rows = db.session.query(Equipment).order_by(Equipment.asset_tag).all()
        assert [row.asset_tag for row in rows] == ["ABS-001", "ABS-002", "ABS-003"]
        assert all(row.ownership_type == "ABSOLUTE" for row in rows)
        assert all(row.qr_code == row.asset_tag for row in rows)
        assert all(row.approval_status == "approved" for row in rows)

        entry = db.session.query(AuditLogEntry).filter(AuditLogEntry.target_type == "INTEGRATION").one()
        assert entry.details == "Absolute sync: 3 added, 0 updated"

    def test_second_sync_is_idempotent(self, client, admin_headers):
        _configure(client, admin_headers)
        client.post("/api/integrations/absolute/sync", headers=admin_headers)

        resp = client.post("/api/integrations/absolute/sync", headers=admin_headers)
        assert resp.json == {"added": 0, "updated": 0}
        assert db.session.query(Equipment).count() == 3
        assert db.session.query(EquipmentHistory).count() == 0

    def test_matched_device_is_overwritten_with_history(self, client, admin_headers):
        client.post("/api/equipment", headers=admin_headers, json={
            "description": "Old laptop",
            "asset_tag": "ABS-001",
            "site": "HQ",
            "department": "Finance",
        })
        _configure(client, admin_headers)

        resp = client.post("/api/integrations/absolute/sync", headers=admin_headers)
        assert resp.json == {"added": 2, "updated": 1}

        db.session.expire_all()
        row = db.session.query(Equipment).filter(Equipment.asset_tag == "ABS-001").one()
        assert row.site == "Remoto"
        assert row.department == "Finance"

        site_change = db.session.query(EquipmentHistory).filter(EquipmentHistory.field == "site").one()
        assert (site_change.from_value, site_change.to_value, site_change.changed_by) == ("HQ", "Remoto", "admin")

    def test_operator_can_preview_but_not_sync(self, client, admin_headers, operator_headers):
        _configure(client, admin_headers)

        resp = client.get("/api/integrations/absolute/inventory", headers=operator_headers)
        assert resp.status_code == 200
        assert len(resp.json["devices"]) == 3

        assert client.post("/api/integrations/absolute/sync", headers=operator_headers).status_code == 403

    def test_service_level_sync(self, app, admin):
        config = settings_service.IntegrationConfig(token_id=TOKEN_ID, secret_key=SECRET_KEY)
        assert inventory_sync_service.sync_with_provider(config, admin) == {"added": 3, "updated": 0}
