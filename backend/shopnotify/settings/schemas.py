"""Notification settings schema.

Every numeric window is clamped to its range and every time-of-day string
is normalized to HH:mm. Invalid values fall back to the default instead of
failing, so a bad settings row can never stop a sync.
"""

import math
import re

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")

# field -> (default, min, max)
NUMERIC_RANGES: dict[str, tuple[int, int, int]] = {
    "consultation_lead_minutes": (60, 0, 24 * 60),
    "event_lead_minutes": (60, 0, 24 * 60),
    "parts_delivery_lookahead_days": (7, 0, 365),
    "keep_unread_days": (30, 1, 365),
    "purge_read_after_days": (14, 0, 365),
}

TIME_DEFAULTS: dict[str, str] = {
    "daily_digest_time_local": "10:00",
    "quiet_hours_start_local": "21:00",
    "quiet_hours_end_local": "08:00",
}


def clamp_number(value: object, default: int, low: int, high: int) -> int:
    """Coerce ``value`` to an int within [low, high]; non-numeric values give ``default``."""
    if isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip())
    except (ValueError, TypeError):
        return default
    if not math.isfinite(number):
        return default
    return max(low, min(high, int(number)))


def normalize_hhmm(value: object, default: str) -> str:
    """Return ``value`` as zero-padded HH:mm, or ``default`` when it is not a valid time."""
    match = _HHMM.match(str(value or "").strip())
    if not match:
        return default
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return default
    return f"{hours:02d}:{minutes:02d}"


class NotificationSettings(BaseModel):
    """The singleton ``notificationSettings`` row."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )

    id: int | None = None

    consultations_enabled: bool = True
    consultation_lead_minutes: int = 60

    parts_delivery_enabled: bool = True
    parts_delivery_lookahead_days: int = 7
    include_overdue_parts_delivery: bool = True

    events_enabled: bool = True
    event_lead_minutes: int = 60

    tech_schedule_changes_enabled: bool = True

    daily_digest_enabled: bool = False
    daily_digest_on_open: bool = True
    daily_digest_time_local: str = "10:00"

    keep_unread_days: int = 30
    purge_read_after_days: int = 14

    # Persisted for the settings window; not enforced during sync.
    quiet_hours_enabled: bool = False
    quiet_hours_start_local: str = "21:00"
    quiet_hours_end_local: str = "08:00"

    @field_validator(*NUMERIC_RANGES, mode="before")
    @classmethod
    def clamp_windows(cls, v: object, info) -> int:
        default, low, high = NUMERIC_RANGES[info.field_name]
        return clamp_number(v, default, low, high)

    @field_validator(*TIME_DEFAULTS, mode="before")
    @classmethod
    def normalize_times(cls, v: object, info) -> str:
        return normalize_hhmm(v, TIME_DEFAULTS[info.field_name])

    @field_validator(
        "consultations_enabled",
        "parts_delivery_enabled",
        "include_overdue_parts_delivery",
        "events_enabled",
        "tech_schedule_changes_enabled",
        "daily_digest_enabled",
        "daily_digest_on_open",
        "quiet_hours_enabled",
        mode="before",
    )
    @classmethod
    def coerce_flags(cls, v: object) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in ("1", "true", "yes", "on")
        return bool(v)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> int | None:
        try:
            return int(v) if v is not None else None
        except (ValueError, TypeError):
            return None

    def to_record(self) -> dict:
        """Serialize with camelCase keys, without the store-assigned id."""
        return self.model_dump(by_alias=True, exclude={"id"})
