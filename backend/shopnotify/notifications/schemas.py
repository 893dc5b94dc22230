"""Notification record schema."""

import enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class NotificationKind(enum.StrEnum):
    CONSULTATION = "consultation"
    PARTS_DELIVERY = "parts_delivery"
    EVENT = "event"
    TECH_SCHEDULE = "tech_schedule"
    DAILY_DIGEST = "daily_digest"


class NotificationRecord(BaseModel):
    """One row of the ``notifications`` collection.

    Fields the engine does not know about are kept (``extra="allow"``) so a
    round trip through the engine never drops host data.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: int | None = None
    key: str
    kind: NotificationKind
    title: str = ""
    message: str | None = None
    created_at: str | None = None
    event_at: str | None = None
    source: str | None = None

    # Source pointers for quick-open actions
    calendar_event_id: int | None = None
    work_order_id: int | None = None
    sale_id: int | None = None
    customer_id: int | None = None

    date: str | None = None  # YYYY-MM-DD copy from the calendar
    time: str | None = None  # HH:mm
    order_url: str | None = None
    tracking_url: str | None = None
    read_at: str | None = None

    @property
    def is_read(self) -> bool:
        return bool(self.read_at)


# Drafts never carry these; the reconciler owns them.
RECONCILER_OWNED_FIELDS = {"id", "created_at", "read_at"}
