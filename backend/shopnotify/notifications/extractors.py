"""Fact extractors: turn calendar and technician data into notification drafts.

Each extractor yields drafts keyed by a deterministic dedup key. Drafts
never carry ``id``, ``created_at`` or ``read_at``; the reconciler owns those.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..integrations.fingerprints import FingerprintStore
from ..settings.schemas import NotificationSettings
from ..sources.schemas import DAY_KEYS, CalendarEvent, Technician
from ..utils.datetime import to_iso
from .exceptions import StoreError
from .hashing import schedule_fingerprint
from .schemas import NotificationKind, NotificationRecord
from .windows import (
    format_time_12h,
    is_overdue,
    is_parts_delivery_due,
    is_within_lead,
    minutes_of_day,
    parse_calendar_event_at,
    parse_hhmm,
    start_of_day,
)

logger = logging.getLogger(__name__)

NO_ITEMS_MESSAGE = "No calendar items for today."
SCHEDULE_CHANGED_MESSAGE = "A schedule was updated in Admin."


def consultation_key(event_id: int | None) -> str:
    return f"cal:{event_id}:consultation"


def parts_delivery_key(event_id: int | None) -> str:
    return f"cal:{event_id}:parts_delivery"


def event_key(event_id: int | None) -> str:
    return f"cal:{event_id}:event"


def schedule_key(technician_id: str, fingerprint: str) -> str:
    return f"tech:{technician_id}:schedule:{fingerprint}"


def daily_digest_key(day: str) -> str:
    return f"daily:{day}"


def _calendar_draft(ev: CalendarEvent, when: datetime, **fields) -> NotificationRecord:
    return NotificationRecord(
        event_at=to_iso(when),
        source="calendar",
        calendar_event_id=ev.id,
        work_order_id=ev.work_order_id,
        sale_id=ev.sale_id,
        customer_id=ev.customer_id,
        date=ev.date,
        time=ev.time or None,
        **fields,
    )


# ── Calendar facts ────────────────────────────────────────────────────


def consultation_fact(ev: CalendarEvent, settings: NotificationSettings, now: datetime) -> NotificationRecord | None:
    if ev.category != "consultation":
        return None
    when = parse_calendar_event_at(ev.date, ev.time, now.tzinfo)
    if when is None:
        return None
    if not is_within_lead(now, when, timedelta(minutes=settings.consultation_lead_minutes)):
        return None
    return _calendar_draft(
        ev,
        when,
        key=consultation_key(ev.id),
        kind=NotificationKind.CONSULTATION,
        title=f"Consultation: {ev.customer_name or 'Customer'}",
        message=ev.title or None,
    )


def parts_delivery_fact(ev: CalendarEvent, settings: NotificationSettings, now: datetime) -> NotificationRecord | None:
    if not ev.is_parts_delivery:
        return None
    when = parse_calendar_event_at(ev.date, ev.time, now.tzinfo)
    if when is None:
        return None
    lookahead = timedelta(days=settings.parts_delivery_lookahead_days)
    if not is_parts_delivery_due(now, when, lookahead, settings.include_overdue_parts_delivery):
        return None

    prefix = "Overdue delivery" if is_overdue(now, when) else "Expected delivery"
    if ev.work_order_id:
        message = f"Work order #{ev.work_order_id}"
    elif ev.sale_id:
        message = f"Sale #{ev.sale_id}"
    else:
        message = None
    return _calendar_draft(
        ev,
        when,
        key=parts_delivery_key(ev.id),
        kind=NotificationKind.PARTS_DELIVERY,
        title=f"{prefix}: {ev.part_label}",
        message=message,
        order_url=ev.order_url or None,
        tracking_url=ev.tracking_url or None,
    )


def event_fact(ev: CalendarEvent, settings: NotificationSettings, now: datetime) -> NotificationRecord | None:
    if ev.category != "event":
        return None
    when = parse_calendar_event_at(ev.date, ev.time, now.tzinfo)
    if when is None:
        return None
    if not is_within_lead(now, when, timedelta(minutes=settings.event_lead_minutes)):
        return None
    return _calendar_draft(
        ev,
        when,
        key=event_key(ev.id),
        kind=NotificationKind.EVENT,
        title=f"Event: {ev.title or 'Event'}",
        message=ev.location or None,
    )


def extract_calendar_facts(
    events: Iterable[CalendarEvent],
    settings: NotificationSettings,
    now: datetime,
) -> list[NotificationRecord]:
    """Drafts for every due consultation, parts delivery and event, in calendar order."""
    rules = []
    if settings.consultations_enabled:
        rules.append(consultation_fact)
    if settings.parts_delivery_enabled:
        rules.append(parts_delivery_fact)
    if settings.events_enabled:
        rules.append(event_fact)

    drafts = []
    for ev in events:
        for rule in rules:
            draft = rule(ev, settings, now)
            if draft is not None:
                drafts.append(draft)
    return drafts


# ── Daily digest ──────────────────────────────────────────────────────


def _time_prefix(value: str) -> str:
    t = format_time_12h(value)
    return f"{t} " if t else ""


def _consultation_line(ev: CalendarEvent) -> str:
    who = ev.customer_name or "Customer"
    title = f" - {ev.title}" if ev.title else ""
    return f"{_time_prefix(ev.time)}{who}{title}"


def _part_line(ev: CalendarEvent) -> str:
    ref = f" ({ev.order_reference})" if ev.order_reference else ""
    return f"{_time_prefix(ev.time)}{ev.part_label}{ref}"


def _event_line(ev: CalendarEvent) -> str:
    loc = f" @ {ev.location}" if ev.location else ""
    return f"{_time_prefix(ev.time)}{ev.title or 'Event'}{loc}"


def _schedule_lines(technicians: Iterable[Technician], now: datetime) -> list[str]:
    day_key = DAY_KEYS[now.weekday()]
    rows = []
    for tech in technicians:
        day = tech.day(day_key)
        if day is None or not day.is_listed:
            continue
        if day.off:
            rows.append((tech.display_name, f"{tech.display_name}: Off"))
        else:
            span = f"{format_time_12h(day.start) or day.start} - {format_time_12h(day.end) or day.end}"
            rows.append((tech.display_name, f"{tech.display_name}: {span}"))
    rows.sort(key=lambda r: r[0].casefold())
    return [line for _, line in rows]


def compose_daily_digest(
    events: Iterable[CalendarEvent],
    technicians: Iterable[Technician] | None,
    now: datetime,
) -> str:
    """Plain-text summary of today's calendar and technician schedules.

    Sections with no items are omitted entirely. ``technicians=None``
    (source unreadable) omits the schedules section.
    """
    today = now.date().isoformat()
    todays = [ev for ev in events if ev.date == today]

    def by_time(items: list[CalendarEvent]) -> list[CalendarEvent]:
        return sorted(items, key=lambda ev: minutes_of_day(ev.time))

    sections = [
        ("Consultations:", [_consultation_line(ev) for ev in by_time([e for e in todays if e.category == "consultation"])]),
        ("Parts expected (delivery):", [_part_line(ev) for ev in by_time([e for e in todays if e.is_parts_delivery])]),
        ("Parts ordered:", [_part_line(ev) for ev in by_time([e for e in todays if e.is_parts_ordered])]),
        ("Events:", [_event_line(ev) for ev in by_time([e for e in todays if e.category == "event"])]),
        ("Schedules:", _schedule_lines(technicians or [], now)),
    ]

    lines: list[str] = []
    for header, items in sections:
        if not items:
            continue
        if lines:
            lines.append("")
        lines.append(header)
        lines.extend(f"- {item}" for item in items)
    return "\n".join(lines) if lines else NO_ITEMS_MESSAGE


def daily_digest_trigger(settings: NotificationSettings, now: datetime) -> datetime:
    at = parse_hhmm(settings.daily_digest_time_local)
    if at is None:
        return start_of_day(now)
    return start_of_day(now).replace(hour=at.hour, minute=at.minute)


def daily_digest_fact(
    events: Iterable[CalendarEvent],
    technicians: Iterable[Technician] | None,
    settings: NotificationSettings,
    now: datetime,
) -> NotificationRecord | None:
    """Today's digest, once the trigger time has passed or on open.

    The key embeds the date, so repeated runs on one day converge on a
    single record whose message follows the calendar.
    """
    if not settings.daily_digest_enabled:
        return None
    trigger_at = daily_digest_trigger(settings, now)
    if not (settings.daily_digest_on_open or now >= trigger_at):
        return None
    today = now.date().isoformat()
    return NotificationRecord(
        key=daily_digest_key(today),
        kind=NotificationKind.DAILY_DIGEST,
        title=f"Daily digest: {today}",
        message=compose_daily_digest(events, technicians, now),
        event_at=to_iso(trigger_at),
    )


# ── Technician schedule changes ───────────────────────────────────────


@dataclass
class ScheduleChange:
    technician_id: str
    fingerprint: str
    draft: NotificationRecord


def extract_schedule_changes(
    technicians: Iterable[Technician],
    fingerprints: FingerprintStore,
    now: datetime,
) -> list[ScheduleChange]:
    """Changes since the last seen fingerprint of each technician.

    A technician seen for the first time only gets a baseline recorded. When
    two technicians share an identity (no id, same name) only the first is
    tracked.
    Fingerprints of changed technicians are NOT updated here; the caller
    stores them once the notification is written.
    """
    changes = []
    seen: set[str] = set()
    for tech in technicians:
        tech_id = tech.identity
        if tech_id in seen:
            logger.warning("Duplicate technician identity %r, schedule changes tracked for the first only", tech_id)
            continue
        seen.add(tech_id)
        current = schedule_fingerprint(tech.schedule)
        previous = fingerprints.get(tech_id)
        if not previous:
            try:
                fingerprints.set(tech_id, current)
            except StoreError:
                logger.exception("Failed to record baseline fingerprint for technician %s", tech_id)
                continue
            logger.debug("Baseline schedule fingerprint for technician %s: %s", tech_id, current)
            continue
        if previous == current:
            continue
        changes.append(
            ScheduleChange(
                technician_id=tech_id,
                fingerprint=current,
                draft=NotificationRecord(
                    key=schedule_key(tech_id, current),
                    kind=NotificationKind.TECH_SCHEDULE,
                    title=f"Technician schedule changed: {tech.display_name}",
                    message=SCHEDULE_CHANGED_MESSAGE,
                    event_at=to_iso(now),
                ),
            )
        )
    return changes
