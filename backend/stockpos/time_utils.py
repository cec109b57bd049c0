# Overview: UTC time helpers shared by models, services and date-range filters.

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _is_date_only(s: str) -> bool:
    return len(s) == 10 and s[4] == "-" and s[7] == "-"


def parse_iso_datetime(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    ISO-8601 string -> naive UTC datetime. None / "" -> None.

    Offsets ("Z", "+03:00") are converted to UTC; naive values are taken as
    UTC. A bare "YYYY-MM-DD" is midnight, or the last microsecond of that
    day with end_of_day=True, so a range ending on a date covers the whole day.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if _is_date_only(s):
        day = date.fromisoformat(s)
        return datetime.combine(day, time.max if end_of_day else time.min)

    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as "YYYY-MM-DDTHH:MM:SSZ"; naive values are already UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def day_key(dt: datetime) -> str:
    """Per-day bucket used by report aggregation."""
    return dt.strftime("%Y-%m-%d")
