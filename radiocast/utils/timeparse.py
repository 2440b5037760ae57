from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

# Layouts seen in upstream feeds. Naive values are taken as UTC.
TIME_LAYOUTS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m",
)


def parse_time(raw: str | None) -> Optional[datetime]:
    """Returns an aware UTC datetime, or None when no known layout matches."""
    s = (raw or "").strip()
    if not s:
        return None

    for layout in TIME_LAYOUTS:
        try:
            dt = datetime.strptime(s, layout)
        except ValueError:
            continue
        return _as_utc(dt)

    # RFC3339, including the trailing "Z" form
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _as_utc(dt)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_rfc3339(dt: datetime) -> str:
    return _as_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")
