"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import get_settings

EPOCH: Final[datetime] = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DEFAULT_TIMEZONE: Final[str] = "UTC"
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured display timezone.

    The timezone is resolved using the ``APP_TIMEZONE`` environment variable (via
    ``Settings``). Values such as ``UTC-05:00`` are accepted as fixed offsets;
    anything else that cannot be resolved falls back to UTC.
    """

    settings = get_settings()
    tz_name = (settings.app_timezone or "").strip() or _DEFAULT_TIMEZONE
    return _resolve_timezone(tz_name)


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize ``value`` to an aware UTC datetime.

    Naive values are assumed to already be expressed in UTC, which is how the
    SQL layer stores them.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_utc_naive(value: datetime | None) -> datetime | None:
    """Return ``value`` in UTC without ``tzinfo`` for ``DATETIME`` columns."""

    normalized = ensure_utc(value)
    if normalized is None:
        return None
    return normalized.replace(tzinfo=None)


def to_iso(value: datetime) -> str:
    """Serialize ``value`` as an ISO-8601 UTC string."""

    normalized = ensure_utc(value)
    assert normalized is not None
    return normalized.isoformat()


def parse_iso(raw: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime.

    A trailing ``Z`` (as written by JavaScript clients) is accepted.
    """

    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = ensure_utc(datetime.fromisoformat(text))
    assert parsed is not None
    return parsed


def in_app_timezone(value: datetime | None) -> datetime | None:
    """Express ``value`` in the configured display timezone."""

    normalized = ensure_utc(value)
    if normalized is None:
        return None
    return normalized.astimezone(get_app_timezone())


def format_relative(value: datetime, *, now: datetime | None = None) -> str:
    """Return a compact relative label such as ``5m`` or ``2d``."""

    reference = ensure_utc(now) if now is not None else now_utc()
    delta = reference - ensure_utc(value)
    seconds = int(delta.total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h"
    days = hours // 24
    if days < 7:
        return f"{days}d"
    return f"{days // 7}w"


def _resolve_timezone(tz_name: str) -> tzinfo:
    """Resolve ``tz_name`` into a ``timezone`` instance."""

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        match = _OFFSET_PATTERN.match(tz_name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            offset = timedelta(hours=hours, minutes=minutes)
            return timezone(sign * offset)
    return timezone.utc
