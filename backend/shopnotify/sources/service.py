"""Read calendar and technician sources from the record store."""

import logging

from pydantic import ValidationError

from ..notifications.exceptions import SourceReadError, StoreError
from ..records.store import CALENDAR_EVENTS, TECHNICIANS, RecordStore
from .schemas import CalendarEvent, Technician

logger = logging.getLogger(__name__)


def _read_collection(store: RecordStore, collection: str) -> list[dict]:
    try:
        rows = store.get(collection)
    except StoreError as exc:
        raise SourceReadError(f"{collection}: unreadable") from exc
    if not isinstance(rows, list):
        raise SourceReadError(f"{collection}: expected a list of records, got {type(rows).__name__}")
    return rows


def load_calendar_events(store: RecordStore) -> list[CalendarEvent]:
    """Load calendar events. Rows that cannot be parsed are logged and skipped."""
    events = []
    for row in _read_collection(store, CALENDAR_EVENTS):
        if not isinstance(row, dict):
            logger.warning("Skipping non-record calendar entry: %r", row)
            continue
        try:
            events.append(CalendarEvent.model_validate(row))
        except ValidationError:
            logger.warning("Skipping malformed calendar event id=%s", row.get("id"))
    return events


def load_technicians(store: RecordStore) -> list[Technician]:
    technicians = []
    for row in _read_collection(store, TECHNICIANS):
        if not isinstance(row, dict):
            logger.warning("Skipping non-record technician entry: %r", row)
            continue
        try:
            technicians.append(Technician.model_validate(row))
        except ValidationError:
            logger.warning("Skipping malformed technician id=%s", row.get("id"))
    return technicians
