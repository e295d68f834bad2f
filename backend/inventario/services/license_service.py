# Overview: License listings, per-product seat accounting and product renames.

"""
License Accounting

Contracted seats per product live in license_totals; used seats are
counted from license rows. The two are joined by product name only:

    available = total - used

where used counts every non-rejected row (pending rows hold a seat while
they wait) and total falls back to used when the product has no configured
total. available may go negative; over-allocation is reported, not blocked.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import ConstraintError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    ApprovalStatus,
    AuditAction,
    AuditTarget,
    License,
    LicenseTotal,
    User,
)
from ..permissions import Action, Resource
from . import audit_service, permission_service
from .transaction import atomic


def list_licenses(actor: User, product: str | None = None) -> list[License]:
    """Administrators see every row; everyone else sees approved rows only."""
    query = db.session.query(License)
    if not actor.is_admin:
        query = query.filter(License.approval_status == ApprovalStatus.APPROVED)
    if product:
        query = query.filter(License.product == product)
    return query.order_by(License.product.asc(), License.id.asc()).all()


def get_license(license_id: int, actor: User) -> License:
    record = db.session.get(License, license_id)
    if record is None:
        raise NotFoundError("License not found")
    if not actor.is_admin and record.approval_status != ApprovalStatus.APPROVED:
        raise NotFoundError("License not found")
    return record


def _clean_product(product) -> str:
    if not isinstance(product, str) or not product.strip():
        raise ValidationError("product is required")
    return product.strip()


def _clean_total(total) -> int:
    if isinstance(total, bool):
        raise ValidationError("total must be an integer")
    if isinstance(total, str):
        stripped = total.strip()
        if not stripped.lstrip("-").isdigit():
            raise ValidationError("total must be an integer")
        total = int(stripped)
    if isinstance(total, float):
        if not total.is_integer():
            raise ValidationError("total must be an integer")
        total = int(total)
    if not isinstance(total, int):
        raise ValidationError("total must be an integer")
    if total < 0:
        raise ValidationError("total must be >= 0")
    return total


def _used_by_product() -> dict[str, int]:
    rows = (
        db.session.query(License.product, func.count(License.id))
        .filter(License.approval_status != ApprovalStatus.REJECTED)
        .group_by(License.product)
        .all()
    )
    return {product: count for product, count in rows}


def list_totals() -> dict[str, int]:
    return {row.product: row.total for row in db.session.query(LicenseTotal).all()}


def get_product_stats() -> list[dict]:
    """
    One entry per product known from license rows or configured totals,
    sorted by product name.
    """
    used_by_product = _used_by_product()
    totals = list_totals()

    stats = []
    for product in sorted(set(used_by_product) | set(totals), key=str.lower):
        used = used_by_product.get(product, 0)
        configured = product in totals
        total = totals[product] if configured else used
        stats.append({
            "product": product,
            "total": total,
            "used": used,
            "available": total - used,
            "configured": configured,
        })
    return stats


def _upsert_total(product: str, total: int, actor: User) -> tuple[LicenseTotal, int | None]:
    row = db.session.query(LicenseTotal).filter(LicenseTotal.product == product).first()
    previous = None
    if row is None:
        row = LicenseTotal(product=product, total=total, updated_by=actor.username)
        db.session.add(row)
    else:
        previous = row.total
        row.total = total
        row.updated_by = actor.username
    db.session.flush()
    return row, previous


def set_product_total(product: str, total, actor: User) -> LicenseTotal:
    """Create or replace the contracted seat count for one product."""
    permission_service.require_permission(actor, Action.MANAGE, Resource.LICENSE_TOTAL)
    product = _clean_product(product)
    total = _clean_total(total)

    with atomic():
        row, previous = _upsert_total(product, total, actor)
        audit_service.record(
            actor.username,
            AuditAction.CREATE if previous is None else AuditAction.UPDATE,
            AuditTarget.CONFIG,
            row.id,
            f"License total for {product!r}: {previous if previous is not None else 'unset'} -> {total}",
        )
    return row


def set_product_totals(mapping: dict, actor: User) -> dict[str, int]:
    """
    Upsert several totals in one transaction and one audit entry.

    Products absent from the mapping keep their configuration.
    """
    permission_service.require_permission(actor, Action.MANAGE, Resource.LICENSE_TOTAL)
    if not isinstance(mapping, dict) or not mapping:
        raise ValidationError("totals must be a non-empty object of product -> total")

    cleaned = {_clean_product(product): _clean_total(total) for product, total in mapping.items()}

    with atomic():
        for product, total in cleaned.items():
            _upsert_total(product, total, actor)
        audit_service.record(
            actor.username,
            AuditAction.UPDATE,
            AuditTarget.CONFIG,
            None,
            "License totals updated: " + ", ".join(f"{p}={t}" for p, t in sorted(cleaned.items())),
        )
    return list_totals()


def delete_product_total(product: str, actor: User) -> None:
    """Remove the configured total only. License rows are untouched."""
    permission_service.require_permission(actor, Action.MANAGE, Resource.LICENSE_TOTAL)
    product = _clean_product(product)

    with atomic():
        row = db.session.query(LicenseTotal).filter(LicenseTotal.product == product).first()
        if row is None:
            raise NotFoundError("License total not found")
        row_id, previous = row.id, row.total
        db.session.delete(row)
        db.session.flush()
        audit_service.record(
            actor.username,
            AuditAction.DELETE,
            AuditTarget.CONFIG,
            row_id,
            f"License total for {product!r} removed (was {previous})",
        )


def rename_product(old_name: str, new_name: str, actor: User) -> int:
    """
    Rename a product across every license row, carrying its configured
    total to the new name in the same transaction.

    Refuses a target name that already has rows or a total, so two
    products are never merged by accident. Returns the number of rows moved.
    """
    permission_service.require_permission(actor, Action.MANAGE, Resource.LICENSE)
    old_name = _clean_product(old_name)
    new_name = _clean_product(new_name)
    if old_name == new_name:
        raise ValidationError("New product name must differ from the old one")

    with atomic():
        source_rows = db.session.query(License).filter(License.product == old_name).count()
        source_total = db.session.query(LicenseTotal).filter(LicenseTotal.product == old_name).first()
        if source_rows == 0 and source_total is None:
            raise NotFoundError(f"Product {old_name!r} not found")

        target_taken = (
            db.session.query(License.id).filter(License.product == new_name).first() is not None
            or db.session.query(LicenseTotal.id).filter(LicenseTotal.product == new_name).first() is not None
        )
        if target_taken:
            raise ConstraintError(f"Product {new_name!r} already exists", field="product")

        moved = (
            db.session.query(License)
            .filter(License.product == old_name)
            .update({License.product: new_name}, synchronize_session=False)
        )
        if source_total is not None:
            source_total.product = new_name
            source_total.updated_by = actor.username

        db.session.flush()
        audit_service.record(
            actor.username,
            AuditAction.UPDATE,
            AuditTarget.LICENSE,
            None,
            f"Renamed product {old_name!r} to {new_name!r} ({moved} licenses)",
        )

    db.session.expire_all()
    return moved
