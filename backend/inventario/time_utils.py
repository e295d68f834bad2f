from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional


PERPETUAL_MARKERS = {"", "N/A", "NA", "PERPETUA", "PERPÉTUA", "PERPETUAL"}

EXPIRING_SOON_DAYS = 30

_DMY_RE = re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{4})$")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def parse_loose_date(value: Optional[str]) -> Optional[date]:
    """
    Parse the free-text dates stored on licenses and equipment.

    Accepts ISO dates (optionally with a time part) and day-first
    DD/MM/YYYY, DD-MM-YYYY or DD.MM.YYYY. Returns None when unparseable.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None

    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    match = _DMY_RE.match(s)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


def expiration_status(value: Optional[str], today: Optional[date] = None) -> str:
    """
    Classify a license expiration date.

    perpetual: empty or a perpetual marker such as "N/A"
    expired:   strictly before today
    expiring:  after today and within EXPIRING_SOON_DAYS
    active:    later than that
    unknown:   text that is not a date
    """
    if value is None or str(value).strip().upper() in PERPETUAL_MARKERS:
        return "perpetual"

    expires_on = parse_loose_date(value)
    if expires_on is None:
        return "unknown"

    today = today or utcnow().date()
    if expires_on < today:
        return "expired"
    if expires_on <= today + timedelta(days=EXPIRING_SOON_DAYS):
        return "expiring"
    return "active"
