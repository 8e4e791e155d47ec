from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_iso() -> str:
    """Business date for new invoices and payments (YYYY-MM-DD)."""
    return date.today().isoformat()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a business date.

    - None / "" -> None
    - "YYYY-MM-DD" -> date
    - a full ISO-8601 datetime is accepted and truncated to its date
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if len(s) == 10:
        return date.fromisoformat(s)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s).date()


def add_days_iso(value: str, days: int) -> str:
    base = parse_iso_date(value) or date.today()
    return (base + timedelta(days=days)).isoformat()


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
