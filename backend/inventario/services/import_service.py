# Overview: Bulk replacement of equipment and licenses from CSV or Excel exports.

"""
Import Service

Accepts the spreadsheet exports the inventory has always been kept in:
semicolon-delimited CSV or .xlsx. Headers are matched after normalization
(upper case, no whitespace, quotes or underscores), so "Usuário Atual",
"USUÁRIO ATUAL" and "current_holder" all land on the same field.

- equipment import replaces the whole equipment table (history included)
- license import replaces the rows of one product, forcing its name

Rows without a description (equipment) or serial key (licenses) are
skipped and counted. Blank cells are stored as NULL; a license's
assigned_user, which may not be NULL, keeps "" instead. Each import is one
transaction with one audit entry.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from openpyxl import load_workbook

from ..errors import ValidationError
from ..extensions import db
from ..models import (
    ApprovalStatus,
    AuditAction,
    AuditTarget,
    Equipment,
    EquipmentHistory,
    License,
    User,
)
from ..permissions import Action, Resource
from . import audit_service, permission_service
from .transaction import atomic


CSV_DELIMITER = ";"
EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


def normalize_header(header: Any) -> str:
    if header is None:
        return ""
    text = str(header).upper()
    for char in ('"', "'", "_"):
        text = text.replace(char, "")
    return "".join(text.split())


def _mapping(pairs: dict[str, str]) -> dict[str, str]:
    mapping = {normalize_header(header): target for header, target in pairs.items()}
    # Every target field also answers to its own name.
    mapping.update({normalize_header(target): target for target in pairs.values()})
    return mapping


EQUIPMENT_HEADERS = _mapping({
    "EQUIPAMENTO": "description",
    "GARANTIA": "warranty",
    "PATRIMONIO": "asset_tag",
    "PATRIMÔNIO": "asset_tag",
    "SERIAL": "serial",
    "USUÁRIO ATUAL": "current_holder",
    "USUARIO ATUAL": "current_holder",
    "USUÁRIO ANTERIOR": "previous_holder",
    "USUARIO ANTERIOR": "previous_holder",
    "LOCAL": "site",
    "SETOR": "department",
    "DATA ENTREGA AO USUÁRIO": "delivery_date",
    "STATUS": "status",
    "DATA DE DEVOLUÇÃO": "return_date",
    "TIPO": "ownership_type",
    "NOTA DE COMPRA": "purchase_note",
    "NOTA / PL K&M": "notes",
    "TERMO DE RESPONSABILIDADE": "responsibility_term",
    "FOTO": "photo_url",
    "QR CODE": "qr_code",
    "DESCRIPTION": "description",
    "ASSET TAG": "asset_tag",
    "HOLDER": "current_holder",
    "DEPARTMENT": "department",
})

LICENSE_HEADERS = _mapping({
    "PRODUTO": "product",
    "TIPOLICENCA": "license_type",
    "TIPO LICENÇA": "license_type",
    "CHAVESERIAL": "serial_key",
    "DATAEXPIRACAO": "expiration_date",
    "DATA EXPIRAÇÃO": "expiration_date",
    "USUARIO": "assigned_user",
    "USUÁRIO": "assigned_user",
    "CARGO": "job_title",
    "SETOR": "department",
    "GESTOR": "manager",
    "CENTROCUSTO": "cost_center",
    "CONTARAZAO": "ledger_account",
    "NOMECOMPUTADOR": "computer_name",
    "NUMEROCHAMADO": "ticket_number",
    "SERIAL KEY": "serial_key",
    "USER": "assigned_user",
})


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    unmapped_columns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "unmapped_columns": self.unmapped_columns,
        }


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Spreadsheet exports on Windows default to cp1252.
        return data.decode("cp1252", errors="replace")


def read_table(filename: str, data: bytes) -> tuple[list[str], list[list[str]]]:
    """(headers, rows) from a CSV or Excel upload, every cell as text."""
    ext = (filename or "").rsplit(".", 1)[-1].lower()

    if ext in EXCEL_EXTENSIONS:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        try:
            values = list(wb.active.values)
        finally:
            wb.close()
    elif ext == "csv":
        reader = csv.reader(io.StringIO(_decode(data)), delimiter=CSV_DELIMITER)
        values = list(reader)
    else:
        raise ValidationError("Unsupported file format (expected .csv or .xlsx)")

    if not values:
        raise ValidationError("File is empty or the header row is missing")

    headers = [_cell_text(h) for h in values[0]]
    rows = [[_cell_text(cell) for cell in row] for row in values[1:]]
    rows = [row for row in rows if any(row)]
    return headers, rows


def map_rows(headers: list[str], rows: list[list[str]], mapping: dict[str, str]) -> tuple[list[dict], list[str]]:
    """Rows as {field: text}; returns (records, unmapped header names)."""
    targets = [mapping.get(normalize_header(h)) for h in headers]
    unmapped = [h for h, target in zip(headers, targets) if target is None and h]

    records = []
    for row in rows:
        record = {}
        for index, target in enumerate(targets):
            if target is None or index >= len(row):
                continue
            # First column wins when two headers map to the same field.
            if not record.get(target):
                record[target] = row[index]
        records.append(record)
    return records, unmapped


def _blanks_to_null(record: dict) -> dict:
    return {field: (value or None) for field, value in record.items()}

def import_equipment(filename: str, data: bytes, actor: User) -> ImportResult:
    permission_service.require_permission(actor, Action.MANAGE, Resource.EQUIPMENT)
    headers, rows = read_table(filename, data)
    records, unmapped = map_rows(headers, rows, EQUIPMENT_HEADERS)

    result = ImportResult(unmapped_columns=unmapped)
    new_rows = []
    for record in records:
        if not record.get("description"):
            result.skipped += 1
            continue
        record = _blanks_to_null(record)
        record["qr_code"] = record.get("asset_tag") or record.get("serial") or record.get("qr_code") or None
        new_rows.append(Equipment(**record, approval_status=ApprovalStatus.APPROVED))

    if not new_rows:
        raise ValidationError("No equipment rows with a description were found")

    with atomic():
        db.session.query(EquipmentHistory).delete(synchronize_session=False)
        db.session.query(Equipment).delete(synchronize_session=False)
        db.session.add_all(new_rows)
        db.session.flush()
        result.imported = len(new_rows)
        audit_service.record(
            actor.username,
            AuditAction.CREATE,
            AuditTarget.EQUIPMENT,
            None,
            f"Equipment inventory replaced from {filename}: {result.imported} imported, {result.skipped} skipped",
        )

    db.session.expire_all()
    return result


def import_licenses(product: str, filename: str, data: bytes, actor: User) -> ImportResult:
    permission_service.require_permission(actor, Action.MANAGE, Resource.LICENSE)
    if not isinstance(product, str) or not product.strip():
        raise ValidationError("product is required")
    product = product.strip()

    headers, rows = read_table(filename, data)
    records, unmapped = map_rows(headers, rows, LICENSE_HEADERS)

    result = ImportResult(unmapped_columns=unmapped)
    new_rows = []
    for record in records:
        if not record.get("serial_key"):
            result.skipped += 1
            continue
        record = _blanks_to_null(record)
        record["product"] = product
        record["assigned_user"] = record.get("assigned_user") or ""
        new_rows.append(License(**record, approval_status=ApprovalStatus.APPROVED))

    if not new_rows:
        raise ValidationError("No license rows with a serial key were found")

    with atomic():
        db.session.query(License).filter(License.product == product).delete(synchronize_session=False)
        db.session.add_all(new_rows)
        db.session.flush()
        result.imported = len(new_rows)
        audit_service.record(
            actor.username,
            AuditAction.CREATE,
            AuditTarget.LICENSE,
            None,
            f"Licenses for {product!r} replaced from {filename}: {result.imported} imported, {result.skipped} skipped",
        )

    db.session.expire_all()
    return result
