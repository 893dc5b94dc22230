"""Lenient views of the host's calendar and technician records.

The host writes these collections from its own windows, so fields may be
missing, mistyped or stale. Missing fields get defaults and wrong types get
coerced; nothing here rejects a record that still has usable data.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


def _coerce_optional_int(v: object) -> int | None:
    if v is None or v == "" or isinstance(v, bool):
        return None
    try:
        return int(float(str(v)))
    except (ValueError, TypeError, OverflowError):
        return None


def _coerce_text(v: object) -> str:
    return str(v).strip() if v is not None else ""


class _SourceModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ── Calendar ──────────────────────────────────────────────────────────


class CalendarEvent(_SourceModel):
    """One entry of the ``calendarEvents`` collection."""

    id: int | None = None
    category: str = ""
    date: str = ""
    time: str = ""
    title: str = ""
    location: str = ""
    customer_name: str = ""
    customer_id: int | None = None
    work_order_id: int | None = None
    sale_id: int | None = None
    part_name: str = ""
    parts_status: str = ""
    order_url: str = ""
    tracking_url: str = ""

    @field_validator("id", "customer_id", "work_order_id", "sale_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: object) -> int | None:
        return _coerce_optional_int(v)

    @field_validator(
        "category", "time", "title", "location", "customer_name",
        "part_name", "parts_status", "order_url", "tracking_url",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: object) -> str:
        return _coerce_text(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: object) -> str:
        """Keep only the YYYY-MM-DD part of date or datetime strings."""
        return _coerce_text(v)[:10]

    @property
    def is_parts_delivery(self) -> bool:
        return self.category == "parts" and self.parts_status in ("", "delivery")

    @property
    def is_parts_ordered(self) -> bool:
        return self.category == "parts" and self.parts_status == "ordered"

    @property
    def part_label(self) -> str:
        return self.part_name or self.title or "Part"

    @property
    def order_reference(self) -> str:
        if self.work_order_id:
            return f"WO #{self.work_order_id}"
        if self.sale_id:
            return f"Sale #{self.sale_id}"
        return ""


# ── Technicians ───────────────────────────────────────────────────────


class DaySchedule(_SourceModel):
    start: str = ""
    end: str = ""
    off: bool = False

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_text(cls, v: object) -> str:
        return _coerce_text(v)

    @field_validator("off", mode="before")
    @classmethod
    def coerce_off(cls, v: object) -> bool:
        return bool(v)

    @property
    def is_listed(self) -> bool:
        return self.off or bool(self.start and self.end)


class Technician(_SourceModel):
    """One entry of the ``technicians`` collection.

    ``schedule`` is kept exactly as stored so its fingerprint changes only
    when the stored schedule does.
    """

    id: int | str | None = None
    nickname: str = ""
    first_name: str = ""
    last_name: str = ""
    schedule: dict = Field(default_factory=dict)

    @field_validator("nickname", "first_name", "last_name", mode="before")
    @classmethod
    def coerce_text(cls, v: object) -> str:
        return _coerce_text(v)

    @field_validator("schedule", mode="before")
    @classmethod
    def coerce_schedule(cls, v: object) -> dict:
        return v if isinstance(v, dict) else {}

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p).strip()
        if self.nickname:
            return self.nickname
        if full:
            return full
        if self.id not in (None, ""):
            return str(self.id)
        return "Technician"

    @property
    def identity(self) -> str:
        """Stable identity for dedup keys and fingerprints."""
        if self.id not in (None, ""):
            return str(self.id)
        return self.display_name

    def day(self, day_key: str) -> DaySchedule | None:
        raw = self.schedule.get(day_key)
        if not isinstance(raw, dict):
            return None
        return DaySchedule.model_validate(raw)
