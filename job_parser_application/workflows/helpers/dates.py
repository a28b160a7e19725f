from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

_POSTED_DAYS_RE = re.compile(r"(\d+)\+?\s*days?\s+ago", re.IGNORECASE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings (with or without fractional seconds / ``Z``)."""

    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_epoch_millis(value: Any) -> Optional[datetime]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_any_date(value: Any) -> Optional[datetime]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # seconds vs milliseconds
        return parse_epoch_millis(value if value > 10_000_000_000 else value * 1000)
    return parse_iso_datetime(value)


def parse_posted_text(text: Any, now: Optional[datetime] = None) -> Optional[datetime]:
    """Turn "Posted Today" / "Posted Yesterday" / "Posted 3 Days Ago" into a date."""

    if not isinstance(text, str) or not text.strip():
        return None
    now = now or utcnow()
    lowered = text.lower()
    if "today" in lowered:
        return now
    if "yesterday" in lowered:
        return now - timedelta(days=1)
    match = _POSTED_DAYS_RE.search(lowered)
    if match:
        return now - timedelta(days=int(match.group(1)))
    return None
