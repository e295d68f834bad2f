import unittest

from inventario import create_app
from inventario.errors import PermissionDeniedError, ValidationError
from inventario.extensions import db
from inventario.models import AppSetting, AuditLogEntry, User, UserRole
from inventario.services import settings_service
from inventario.services.auth_service import hash_password


class SettingsServiceTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "BCRYPT_ROUNDS": 4,
        })
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()

        self.admin = User(
            real_name="Admin",
            username="admin",
            email="admin@company.com",
            password_hash=hash_password("Admin@12345"),
            role=UserRole.ADMIN,
        )
        self.operator = User(
            real_name="Operator",
            username="operator",
            email="operator@company.com",
            password_hash=hash_password("Passw0rd!"),
            role=UserRole.OPERATOR,
        )
        db.session.add_all([self.admin, self.operator])
        db.session.commit()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def test_defaults(self):
        settings = settings_service.get_settings()
        self.assertEqual(settings["company_name"], "Inventário Pro")
        self.assertEqual(settings["header_style"]["textAlign"], "left")
        self.assertEqual(settings["absolute_sync_interval"], 0)
        self.assertEqual(settings["absolute_secret_key"], "")

    def test_update_and_audit(self):
        settings_service.update_settings({"company_name": "  ACME TI  ", "sso_enabled": True}, self.admin)

        settings = settings_service.get_settings()
        self.assertEqual(settings["company_name"], "ACME TI")
        self.assertTrue(settings["sso_enabled"])

        entry = db.session.query(AuditLogEntry).one()
        self.assertEqual(entry.target_type, "CONFIG")
        self.assertEqual(entry.details, "Settings updated: company_name, sso_enabled")
        self.assertEqual(db.session.query(AppSetting).filter_by(key="company_name").one().updated_by, "admin")

    def test_header_style_merges_defaults(self):
        settings_service.update_settings({"header_style": {"textAlign": "center"}}, self.admin)
        self.assertEqual(
            settings_service.get_value("header_style"),
            {"fontFamily": "inherit", "fontSize": "1.5rem", "textAlign": "center"},
        )

    def test_secrets_are_masked_and_mask_round_trips(self):
        settings_service.update_settings({"absolute_secret_key": "secret-1234567890"}, self.admin)
        masked = settings_service.get_settings()
        self.assertEqual(masked["absolute_secret_key"], settings_service.MASK)

        settings_service.update_settings(masked, self.admin)
        self.assertEqual(settings_service.get_value("absolute_secret_key"), "secret-1234567890")
        self.assertEqual(settings_service.get_settings(mask_secrets=False)["absolute_secret_key"], "secret-1234567890")

    def test_invalid_values(self):
        for patch in (
            {"unknown_key": 1},
            {"absolute_sync_interval": -1},
            {"absolute_sync_interval": "6"},
            {"sso_enabled": "yes"},
            {"header_style": {"textAlign": "justify"}},
            {},
        ):
            with self.assertRaises(ValidationError):
                settings_service.update_settings(patch, self.admin)
        self.assertEqual(db.session.query(AppSetting).count(), 0)

    def test_operator_cannot_update(self):
        with self.assertRaises(PermissionDeniedError):
            settings_service.update_settings({"company_name": "Mine"}, self.operator)

    def test_integration_config(self):
        config = settings_service.save_integration_config("token-1234567890", "secret-1234567890", self.admin, sync_interval_hours=12)
        self.assertTrue(config.has_credentials)
        self.assertEqual(config.sync_interval_hours, 12)
        self.assertEqual(settings_service.get_integration_config(), config)


if __name__ == "__main__":
    unittest.main()
