# wb_platform/timeutil.py
# ISO-8601 helpers shared by config, importer and providers.
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

__all__ = ["utc_now", "as_utc", "parse_iso", "iso_z"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    # naive timestamps are treated as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse ISO strings (with or without 'Z'), datetimes or epoch numbers; None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    s = str(value).strip()
    if not s:
        return None
    try:
        return as_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        return None


def iso_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return as_utc(dt).isoformat().replace("+00:00", "Z")
