# Overview: TOTP second factor: enrollment, confirmation, verification, removal.

"""
Two-Factor Authentication Service

Standard RFC 6238 TOTP via pyotp: 6 digits, 30 second step, accepted within
TOTP_VALID_WINDOW steps either side of now (1 by default).

A password login for a 2FA account yields a login challenge instead of a
session. verify() needs that challenge and a code; the challenge is
single-use, expires after LOGIN_CHALLENGE_MINUTES and is dropped after
LOGIN_CHALLENGE_MAX_ATTEMPTS wrong codes.

Known gap: codes themselves are not single-use. The same code verifies
again, for a fresh challenge, while it stays inside the window.
"""

from __future__ import annotations

from datetime import timedelta

import pyotp
from flask import current_app

from ..errors import AuthError, NotFoundError, ValidationError
from ..extensions import db
from ..models import LoginChallenge, User
from .session_service import generate_token, hash_token
from inventario.time_utils import utcnow


INVALID_CODE = "Invalid verification code"


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def _code_matches(secret: str | None, code) -> bool:
    if not secret or code is None:
        return False
    code = str(code).strip()
    if len(code) != 6 or not code.isdigit():
        return False
    window = current_app.config.get("TOTP_VALID_WINDOW", 1)
    return pyotp.TOTP(secret).verify(code, valid_window=window)


def generate_secret(user_id: int) -> dict:
    """
    Issue a fresh base32 secret and its otpauth:// enrollment URI.

    The secret is persisted (overwriting any earlier one) but the enabled
    flag is untouched until enable() confirms a code.
    """
    user = _get_user(user_id)
    secret = pyotp.random_base32()
    issuer = current_app.config.get("TOTP_ISSUER", "Inventario Pro")
    uri = pyotp.TOTP(secret).provisioning_uri(name=user.email or user.username, issuer_name=issuer)

    user.two_factor_secret = secret
    db.session.commit()

    return {"secret": secret, "enrollment_uri": uri}


def enable(user_id: int, secret: str, code) -> User:
    """Confirm enrollment. State is untouched when the code does not match."""
    if not secret:
        raise ValidationError("secret is required")
    user = _get_user(user_id)
    if not _code_matches(secret, code):
        raise AuthError(INVALID_CODE)

    user.two_factor_secret = secret
    user.is_2fa_enabled = True
    db.session.commit()
    return user


def issue_challenge(user: User) -> str:
    """
    Record a password-verified login that still owes its TOTP code.

    Returns the plaintext challenge; only its SHA-256 is stored.
    """
    token = generate_token()
    now = utcnow()
    minutes = current_app.config.get("LOGIN_CHALLENGE_MINUTES", 5)
    db.session.add(LoginChallenge(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=now,
        expires_at=now + timedelta(minutes=minutes),
        failed_attempts=0,
    ))
    db.session.commit()
    return token


def verify(challenge: str, code) -> User:
    """
    Second login step. Stamps last_login_at; the caller issues the session.

    Unknown, expired and exhausted challenges fail with the same generic
    error as a wrong code.
    """
    if not challenge:
        raise AuthError(INVALID_CODE)

    pending = db.session.query(LoginChallenge).filter_by(token_hash=hash_token(challenge)).first()
    if pending is None:
        raise AuthError(INVALID_CODE)

    if pending.expires_at < utcnow():
        db.session.delete(pending)
        db.session.commit()
        raise AuthError(INVALID_CODE)

    user = pending.user
    if user is None or not user.is_2fa_enabled or not _code_matches(user.two_factor_secret, code):
        pending.failed_attempts += 1
        if pending.failed_attempts >= current_app.config.get("LOGIN_CHALLENGE_MAX_ATTEMPTS", 5):
            db.session.delete(pending)
        db.session.commit()
        raise AuthError(INVALID_CODE)

    db.session.delete(pending)
    user.last_login_at = utcnow()
    db.session.commit()
    return user


def cleanup_expired_challenges() -> int:
    deleted = db.session.query(LoginChallenge).filter(
        LoginChallenge.expires_at < utcnow()
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def disable(user_id: int) -> User:
    """Clear the flag and the secret unconditionally."""
    user = _get_user(user_id)
    user.is_2fa_enabled = False
    user.two_factor_secret = None
    db.session.commit()
    return user
