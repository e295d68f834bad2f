# Overview: Service-layer operations for user accounts; every mutation is audited.

"""
User Administration

User Managers administer non-administrator accounts only. Creating,
modifying or deleting an administrator, or granting the Admin role,
requires MANAGE_USER, which only administrators hold.

Password changes and deletions revoke the user's sessions in the same
transaction as the change.
"""

from __future__ import annotations

import logging

from flask import current_app

from ..errors import AuthError, ConstraintError, NotFoundError, ValidationError
from ..extensions import db
from ..models import AuditAction, AuditTarget, LoginChallenge, SessionToken, User, UserRole
from ..permissions import Action, Resource
from ..validation import PROFILE_POLICY, USER_POLICY, validate_payload
from . import audit_service, permission_service, session_service
from .auth_service import hash_password, verify_password
from .mutation_service import describe_changes, diff_fields, write_fields
from .transaction import atomic


logger = logging.getLogger(__name__)


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _check_role(role: str) -> None:
    if role not in UserRole.ALL:
        raise ValidationError(f"role must be one of: {', '.join(UserRole.ALL)}")


def _check_email(email: str) -> None:
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("email must be a valid address")


def _check_unique(username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    """Pre-check so the 409 names the colliding field; the unique indexes still back this up."""
    for field, value in (("username", username), ("email", email)):
        if value is None:
            continue
        query = db.session.query(User.id).filter(getattr(User, field) == value)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise ConstraintError(f"A user with this {field} already exists", field=field)


def _require_admin_scope(actor: User, target_role: str | None) -> None:
    if target_role == UserRole.ADMIN:
        permission_service.require_permission(actor, Action.MANAGE, Resource.USER)


def create_user(fields: dict, password: str, actor: User) -> User:
    permission_service.require_permission(actor, Action.CREATE, Resource.USER)
    patch = validate_payload(model=User, payload=fields, policy=USER_POLICY, partial=False)
    _check_role(patch["role"])
    _check_email(patch["email"])
    _require_admin_scope(actor, patch["role"])
    password_hash = hash_password(password)

    with atomic():
        _check_unique(patch["username"], patch["email"])
        user = User(**patch, password_hash=password_hash)
        db.session.add(user)
        db.session.flush()
        audit_service.record(
            actor.username,
            AuditAction.CREATE,
            AuditTarget.USER,
            user.id,
            f"Created user {user.username!r} ({user.role})",
        )
    return user


def update_user(user_id: int, fields: dict, actor: User, password: str | None = None) -> User:
    """Partial update. A non-empty password rehashes and revokes every session of the user."""
    permission_service.require_permission(actor, Action.UPDATE, Resource.USER)
    patch = validate_payload(model=User, payload=fields, policy=USER_POLICY, partial=True)
    if "role" in patch:
        _check_role(patch["role"])
    if "email" in patch:
        _check_email(patch["email"])
    password_hash = hash_password(password) if password else None

    with atomic():
        user = get_user(user_id)
        _require_admin_scope(actor, user.role)
        _require_admin_scope(actor, patch.get("role"))
        _check_unique(patch.get("username"), patch.get("email"), exclude_id=user.id)

        changes = diff_fields(user, patch)
        write_fields(user, patch)

        details = describe_changes(changes)
        if password_hash:
            user.password_hash = password_hash
            revoked = session_service.revoke_all_user_sessions(user.id, reason="Password changed")
            details = f"{details}; password changed ({revoked} sessions revoked)"

        db.session.flush()
        audit_service.record(
            actor.username,
            AuditAction.UPDATE,
            AuditTarget.USER,
            user.id,
            f"Updated user {user.username!r}: {details}",
        )
    return user


def update_own_profile(
    actor: User,
    fields: dict,
    password: str | None = None,
    current_password: str | None = None,
    session_id: int | None = None,
) -> User:
    """
    Self-service edit of real_name, email and password. Needs no USER permission.

    A new password must come with the current one. It revokes every other
    session of the account; session_id, the caller's own, stays valid.
    """
    patch = validate_payload(model=User, payload=fields, policy=PROFILE_POLICY, partial=True)
    if "email" in patch:
        _check_email(patch["email"])

    password_hash = None
    if password:
        if not verify_password(current_password, actor.password_hash):
            raise AuthError("Current password is incorrect")
        password_hash = hash_password(password)

    with atomic():
        user = get_user(actor.id)
        _check_unique(None, patch.get("email"), exclude_id=user.id)

        changes = diff_fields(user, patch)
        write_fields(user, patch)

        details = describe_changes(changes)
        if password_hash:
            user.password_hash = password_hash
            revoked = session_service.revoke_all_user_sessions(
                user.id, reason="Password changed", keep_session_id=session_id
            )
            details = f"{details}; password changed ({revoked} other sessions revoked)"

        db.session.flush()
        audit_service.record(
            user.username,
            AuditAction.UPDATE,
            AuditTarget.USER,
            user.id,
            f"Updated own profile: {details}",
        )
    return user


def delete_user(user_id: int, actor: User) -> None:
    permission_service.require_permission(actor, Action.DELETE, Resource.USER)
    if actor.id == user_id:
        raise ValidationError("You cannot delete your own account")

    with atomic():
        user = get_user(user_id)
        _require_admin_scope(actor, user.role)
        username = user.username

        db.session.query(SessionToken).filter(
            SessionToken.user_id == user.id
        ).delete(synchronize_session=False)
        db.session.query(LoginChallenge).filter(
            LoginChallenge.user_id == user.id
        ).delete(synchronize_session=False)
        db.session.delete(user)
        db.session.flush()

        audit_service.record(
            actor.username,
            AuditAction.DELETE,
            AuditTarget.USER,
            user_id,
            f"Deleted user {username!r}",
        )


def admin_disable_two_factor(user_id: int, actor: User) -> User:
    """Administrator override for a user who lost their authenticator."""
    permission_service.require_permission(actor, Action.MANAGE, Resource.USER)

    with atomic():
        user = get_user(user_id)
        user.is_2fa_enabled = False
        user.two_factor_secret = None
        db.session.flush()
        audit_service.record(
            actor.username,
            AuditAction.UPDATE,
            AuditTarget.USER,
            user.id,
            f"Two-factor authentication disabled for {user.username!r} by administrator",
        )
    return user


def ensure_seed_admin() -> tuple[User, bool]:
    """
    Create the bootstrap administrator when it does not exist.

    Returns (user, created). Credentials come from the SEED_ADMIN_* config keys.
    """
    config = current_app.config
    username = config["SEED_ADMIN_USERNAME"]

    user = db.session.query(User).filter(User.username == username).first()
    if user is not None:
        return user, False

    user = User(
        real_name=config["SEED_ADMIN_REAL_NAME"],
        username=username,
        email=config["SEED_ADMIN_EMAIL"],
        password_hash=hash_password(config["SEED_ADMIN_PASSWORD"]),
        role=UserRole.ADMIN,
    )
    db.session.add(user)
    db.session.commit()
    logger.info("Seeded administrator account %r", username)
    return user, True
