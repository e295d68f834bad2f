# Overview: Transaction boundary shared by every mutating service.

from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from ..errors import ConstraintError, InventarioError, TransientError
from ..extensions import db


logger = logging.getLogger(__name__)

# Unique columns whose collisions are reported back to the client by name.
_UNIQUE_FIELDS = ("asset_tag", "username", "email", "product", "key")


def constraint_field(exc: IntegrityError) -> str | None:
    """Best-effort name of the column behind a unique-constraint failure."""
    message = str(getattr(exc, "orig", exc)).lower()
    for field in _UNIQUE_FIELDS:
        if f".{field}" in message or f"({field})" in message or f"_{field}_" in message:
            return field
    return None


@contextmanager
def atomic():
    """
    One bounded unit of work on the request's session.

    Commits when the block exits cleanly, rolls back on any exception.
    Driver errors are translated into the service taxonomy so routes can
    map them to HTTP statuses:
    - IntegrityError -> ConstraintError (409)
    - OperationalError / DisconnectionError / pool timeout -> TransientError (503)
    Everything else propagates unchanged after the rollback.
    """
    try:
        yield db.session
        db.session.commit()
    except InventarioError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        field = constraint_field(exc)
        message = f"Duplicate value for {field}" if field else "Constraint violation"
        raise ConstraintError(message, field=field) from exc
    except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
        db.session.rollback()
        logger.warning("Transient database failure: %s", exc)
        raise TransientError("Database temporarily unavailable, please retry") from exc
    except Exception:
        db.session.rollback()
        raise
