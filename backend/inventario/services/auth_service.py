# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for password hashing
and validates password strength before anything is stored.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, 12 by default)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Unknown username and wrong password fail with the same message
- Session tokens managed separately (see session_service.py)
"""

import logging
import re

import bcrypt
from flask import current_app

from ..errors import AuthError, ValidationError
from ..extensions import db
from ..models import User
from inventario.time_utils import utcnow


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises ValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise ValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise ValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise ValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise ValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. A malformed stored hash
    counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def login(username: str, password: str) -> User:
    """
    Authenticate by exact username and password.

    Stamps last_login_at on success. Raises AuthError("Invalid credentials")
    for both an unknown username and a wrong password.

    The second factor is not checked here; callers inspect
    user.requires_second_factor before issuing a session.
    """
    username = (username or "").strip()
    user = db.session.query(User).filter(User.username == username).first() if username else None

    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login for username=%r", username)
        raise AuthError(INVALID_CREDENTIALS)

    user.last_login_at = utcnow()
    db.session.commit()

    return user
