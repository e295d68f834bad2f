from __future__ import annotations

from ..extensions import db
from inventario.time_utils import to_utc_z


class AppSetting(db.Model):
    """
    Key-value application configuration (branding, SSO, integration).

    Keys are validated against the registry in settings_service; values
    are stored as JSON.
    """
    __tablename__ = "app_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False, unique=True, index=True)
    value = db.Column(db.JSON, nullable=True)

    updated_by = db.Column(db.String(255), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value,
            "updated_by": self.updated_by,
            "updated_at": to_utc_z(self.updated_at),
        }
