"""Helpers for working with timezone-aware datetimes.

All day-based rules (start of today, default 09:00 event time, daily digest
trigger) are evaluated in the application timezone.
"""

import os
import re
from datetime import UTC, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import settings

_OFFSET_PATTERN = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)

LOCALTIME_PATH = Path("/etc/localtime")


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured application timezone.

    Resolved from ``APP_TIMEZONE``; an empty or unknown value falls back to
    the host's local timezone.
    """
    tz_name = (settings.app_timezone or "").strip()
    if not tz_name:
        return _local_timezone()
    return _resolve_timezone(tz_name)


def now_local() -> datetime:
    """Return the current time in the application timezone."""
    return datetime.now(tz=get_app_timezone())


def to_iso(value: datetime) -> str:
    return value.isoformat()


def parse_iso(value: object, tz: tzinfo | None = None) -> datetime | None:
    """Parse a stored ISO timestamp. Naive values are read in ``tz``.

    Returns None for missing or malformed input.
    """
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or get_app_timezone())
    return parsed


def _local_timezone() -> tzinfo:
    """The host zone as a ZoneInfo, with its DST rules.

    Looked up from ``TZ``, then the /etc/localtime link target, then the
    /etc/localtime file itself. UTC when none resolves.
    """
    for name in (os.environ.get("TZ", "").lstrip(":").strip(), _localtime_link_name()):
        if not name:
            continue
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            continue
    try:
        with LOCALTIME_PATH.open("rb") as fh:
            return ZoneInfo.from_file(fh, key="localtime")
    except (OSError, ValueError):
        return UTC


def _localtime_link_name() -> str:
    if not LOCALTIME_PATH.is_symlink():
        return ""
    target = str(LOCALTIME_PATH.resolve())
    _, sep, name = target.partition("zoneinfo/")
    return name if sep else ""


def _resolve_timezone(tz_name: str) -> tzinfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        match = _OFFSET_PATTERN.match(tz_name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            return timezone(sign * timedelta(hours=hours, minutes=minutes))
    return _local_timezone()
