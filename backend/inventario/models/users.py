from __future__ import annotations

from ..extensions import db
from inventario.time_utils import to_utc_z


class UserRole:
    """
    Closed role enumeration. Values match the strings stored by earlier
    deployments so backups restore unchanged.
    """
    ADMIN = "Admin"
    USER_MANAGER = "User Manager"
    OPERATOR = "User/Operador"

    ALL = (ADMIN, USER_MANAGER, OPERATOR)


class User(db.Model):
    """
    User accounts for authentication, authorization and audit attribution.

    The password hash and TOTP secret are never serialized by to_dict().
    A user with an sso_provider skips the local second factor at login.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    real_name = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(255), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(50), nullable=False, default=UserRole.OPERATOR)

    sso_provider = db.Column(db.String(50), nullable=True)
    two_factor_secret = db.Column(db.String(255), nullable=True)
    is_2fa_enabled = db.Column(db.Boolean, nullable=False, default=False)

    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def requires_second_factor(self) -> bool:
        return bool(self.is_2fa_enabled) and not self.sso_provider

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "real_name": self.real_name,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "sso_provider": self.sso_provider,
            "is_2fa_enabled": bool(self.is_2fa_enabled),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"
