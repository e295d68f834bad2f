# Overview: Reconciles the external device inventory (Absolute) into equipment.

"""
External Inventory Sync

The provider client is a stand-in returning a fixed device list; it only
checks that credentials look plausible. Reconciliation is real:

- devices are matched to equipment by asset tag
- matched rows get description, serial, holder, site and status overwritten,
  with equipment history attributed to the actor
- unmatched devices are inserted approved, owned by "ABSOLUTE"
- the whole run is one transaction with one INTEGRATION audit entry

`updated` counts only matched devices whose fields actually changed, so a
second run over unchanged data reports added=0, updated=0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import AuthError, ValidationError
from ..extensions import db
from ..models import ApprovalStatus, AuditAction, AuditTarget, Equipment, User
from ..permissions import Action, Resource
from . import audit_service, permission_service
from .equipment_service import find_by_asset_tag
from .mutation_service import apply_equipment_changes
from .settings_service import IntegrationConfig
from .transaction import atomic


logger = logging.getLogger(__name__)

OWNERSHIP_TYPE = "ABSOLUTE"

# Minimum credential length accepted by the stand-in client.
MIN_CREDENTIAL_LENGTH = 10


@dataclass(frozen=True)
class ProviderDevice:
    device_id: int
    description: str
    asset_tag: str
    serial: str
    current_holder: str
    site: str
    status: str

    def equipment_fields(self) -> dict:
        return {
            "description": self.description,
            "serial": self.serial,
            "current_holder": self.current_holder,
            "site": self.site,
            "status": self.status,
        }

    def to_dict(self) -> dict:
        return {"id": self.device_id, "asset_tag": self.asset_tag, **self.equipment_fields()}


_STUB_DEVICES = (
    ProviderDevice(1001, 'Absolute: MacBook Pro 16"', "ABS-001", "C02Z1234ABCD", "John Doe", "Remoto", "Ativo"),
    ProviderDevice(1002, "Absolute: Dell Latitude 7420", "ABS-002", "DELL5678IJKL", "Jane Smith", "Escritório", "Ativo"),
    ProviderDevice(1003, "Absolute: HP EliteBook", "ABS-003", "HP2468WXYZ", "", "Estoque", "Em Estoque"),
)


class AbsoluteClient:
    """Stand-in for the provider API. Returns a fixed device list."""

    def __init__(self, config: IntegrationConfig):
        self.config = config

    def test_connection(self) -> dict:
        if (
            len(self.config.token_id or "") <= MIN_CREDENTIAL_LENGTH
            or len(self.config.secret_key or "") <= MIN_CREDENTIAL_LENGTH
        ):
            raise AuthError("Invalid provider credentials")
        return {"success": True, "message": "Connection to the Absolute API succeeded."}

    def get_devices(self) -> list[ProviderDevice]:
        return list(_STUB_DEVICES)


def _require_credentials(config: IntegrationConfig) -> None:
    if config is None or not config.has_credentials:
        raise ValidationError("Absolute credentials are not configured. Save them in Settings first.")


def test_connection(token_id: str, secret_key: str) -> dict:
    return AbsoluteClient(IntegrationConfig(token_id=token_id or "", secret_key=secret_key or "")).test_connection()


def get_inventory(config: IntegrationConfig) -> list[dict]:
    _require_credentials(config)
    return [device.to_dict() for device in AbsoluteClient(config).get_devices()]


def sync_with_provider(config: IntegrationConfig, actor: User) -> dict:
    """Run one reconciliation. Returns {"added": n, "updated": n}."""
    permission_service.require_permission(actor, Action.MANAGE, Resource.INTEGRATION)
    _require_credentials(config)

    devices = AbsoluteClient(config).get_devices()
    added = updated = 0

    with atomic():
        for device in devices:
            equipment = find_by_asset_tag(device.asset_tag)
            if equipment is not None:
                changes = apply_equipment_changes(equipment, device.equipment_fields(), actor.username)
                if changes:
                    updated += 1
                continue

            db.session.add(Equipment(
                **device.equipment_fields(),
                asset_tag=device.asset_tag,
                ownership_type=OWNERSHIP_TYPE,
                qr_code=device.asset_tag,
                approval_status=ApprovalStatus.APPROVED,
            ))
            # Flush so a repeated tag later in the same feed matches this row.
            db.session.flush()
            added += 1

        db.session.flush()
        audit_service.record(
            actor.username,
            AuditAction.UPDATE,
            AuditTarget.INTEGRATION,
            None,
            f"Absolute sync: {added} added, {updated} updated",
        )

    logger.info("Absolute sync by %s: %d added, %d updated", actor.username, added, updated)
    return {"added": added, "updated": updated}
