from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..errors import ValidationError
from ..extensions import db
from ..models import AppSetting, AuditAction, AuditTarget, User
from ..permissions import Action, Resource
from . import audit_service, permission_service
from .transaction import atomic


MASK = "********"

HEADER_TEXT_ALIGN = {"left", "center", "right"}


def _validate_string(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


def _validate_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean")
    return value


def _validate_interval(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer number of hours")
    if value < 0:
        raise ValidationError(f"{key} must be >= 0")
    return value


def _validate_header_style(key: str, value: Any) -> dict:
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be an object")
    allowed = {"fontFamily", "fontSize", "textAlign"}
    unknown = set(value) - allowed
    if unknown:
        raise ValidationError(f"{key} has unknown fields: {', '.join(sorted(unknown))}")
    for field, field_value in value.items():
        if not isinstance(field_value, str):
            raise ValidationError(f"{key}.{field} must be a string")
    if "textAlign" in value and value["textAlign"] not in HEADER_TEXT_ALIGN:
        raise ValidationError(f"{key}.textAlign must be one of: {', '.join(sorted(HEADER_TEXT_ALIGN))}")
    return {**SETTINGS["header_style"].default, **value}


@dataclass(frozen=True)
class SettingDefinition:
    key: str
    default: Any
    validate: Callable[[str, Any], Any]
    secret: bool = False


SETTINGS: dict[str, SettingDefinition] = {
    d.key: d
    for d in (
        SettingDefinition("company_name", "Inventário Pro", _validate_string),
        SettingDefinition(
            "header_style",
            {"fontFamily": "inherit", "fontSize": "1.5rem", "textAlign": "left"},
            _validate_header_style,
        ),
        SettingDefinition("sso_enabled", False, _validate_bool),
        SettingDefinition("sso_url", "", _validate_string),
        SettingDefinition("sso_entity_id", "", _validate_string),
        SettingDefinition("sso_certificate", "", _validate_string),
        SettingDefinition("absolute_token_id", "", _validate_string, secret=True),
        SettingDefinition("absolute_secret_key", "", _validate_string, secret=True),
        SettingDefinition("absolute_sync_interval", 0, _validate_interval),
    )
}


@dataclass(frozen=True)
class IntegrationConfig:
    """Credentials and schedule for the external inventory provider."""
    token_id: str
    secret_key: str
    sync_interval_hours: int = 0

    @property
    def has_credentials(self) -> bool:
        return bool(self.token_id) and bool(self.secret_key)


def get_value(key: str) -> Any:
    definition = SETTINGS.get(key)
    if definition is None:
        raise ValidationError(f"Unknown setting: {key}")
    row = db.session.query(AppSetting).filter(AppSetting.key == key).first()
    if row is None or row.value is None:
        return definition.default
    return row.value


def get_settings(mask_secrets: bool = True) -> dict[str, Any]:
    """Every known key, stored value or default. Non-empty secrets are masked."""
    stored = {row.key: row.value for row in db.session.query(AppSetting).all()}
    result = {}
    for key, definition in SETTINGS.items():
        value = stored.get(key)
        if value is None:
            value = definition.default
        if mask_secrets and definition.secret and value:
            value = MASK
        result[key] = value
    return result


def _upsert(key: str, value: Any, actor: User) -> None:
    row = db.session.query(AppSetting).filter(AppSetting.key == key).first()
    if row is None:
        db.session.add(AppSetting(key=key, value=value, updated_by=actor.username))
    else:
        row.value = value
        row.updated_by = actor.username


def update_settings(patch: dict, actor: User) -> dict[str, Any]:
    """
    Validate and upsert a partial settings patch, with one CONFIG audit entry.

    A secret submitted as the mask itself is left unchanged, so a client can
    round-trip the masked listing.
    """
    permission_service.require_permission(actor, Action.MANAGE, Resource.SETTINGS)
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("Settings payload must be a non-empty object")

    unknown = sorted(k for k in patch if k not in SETTINGS)
    if unknown:
        raise ValidationError(f"Unknown setting: {', '.join(unknown)}")

    cleaned = {}
    for key, raw in patch.items():
        definition = SETTINGS[key]
        if definition.secret and raw == MASK:
            continue
        cleaned[key] = definition.validate(key, raw)

    if cleaned:
        with atomic():
            for key, value in cleaned.items():
                _upsert(key, value, actor)
            db.session.flush()
            audit_service.record(
                actor.username,
                AuditAction.UPDATE,
                AuditTarget.CONFIG,
                None,
                "Settings updated: " + ", ".join(sorted(cleaned)),
            )

    return get_settings()


def get_integration_config() -> IntegrationConfig:
    return IntegrationConfig(
        token_id=get_value("absolute_token_id") or "",
        secret_key=get_value("absolute_secret_key") or "",
        sync_interval_hours=int(get_value("absolute_sync_interval") or 0),
    )


def save_integration_config(token_id: str, secret_key: str, actor: User, sync_interval_hours: int | None = None) -> IntegrationConfig:
    """Persist provider credentials through the regular settings path."""
    patch = {"absolute_token_id": token_id, "absolute_secret_key": secret_key}
    if sync_interval_hours is not None:
        patch["absolute_sync_interval"] = sync_interval_hours
    update_settings(patch, actor)
    return get_integration_config()
