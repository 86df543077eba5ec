from __future__ import annotations

from datetime import datetime, date, timezone
from typing import Any, Optional


def iso_today() -> str:
    return date.today().isoformat()


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def iso_now_precise() -> str:
    # Payment identity; two payments in the same second must still differ.
    return datetime.now(timezone.utc).isoformat()


def money(v: Any) -> float:
    return round(float(v or 0), 2)


def parse_date(value: Any) -> Optional[date]:
    """
    Accepts a date, a datetime, or an ISO string (date or datetime).
    Returns None for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None
