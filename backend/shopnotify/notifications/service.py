"""Notification list operations used by the host's notification window."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from pydantic import ValidationError

from ..records.store import NOTIFICATIONS, RecordStore
from ..settings.schemas import clamp_number
from ..utils.datetime import now_local, parse_iso, to_iso
from .exceptions import StoreError
from .schemas import NotificationRecord

logger = logging.getLogger(__name__)


def list_notifications(store: RecordStore) -> list[NotificationRecord]:
    """All parseable notifications, newest first."""
    records = []
    for row in store.get(NOTIFICATIONS):
        if not isinstance(row, dict):
            continue
        try:
            records.append(NotificationRecord.model_validate(row))
        except ValidationError:
            logger.warning("Skipping malformed notification id=%s", row.get("id"))
    records.sort(key=lambda n: n.created_at or "", reverse=True)
    return records


def get_unread_count(store: RecordStore) -> int:
    return sum(1 for n in list_notifications(store) if not n.is_read)


def mark_notification_read(store: RecordStore, notification_id: int, read: bool, now: datetime | None = None) -> bool:
    """Set or clear ``readAt``. Returns False when no such notification exists."""
    for row in store.get(NOTIFICATIONS):
        if isinstance(row, dict) and row.get("id") == notification_id:
            read_at = to_iso(now or now_local()) if read else None
            store.update(NOTIFICATIONS, notification_id, {**row, "readAt": read_at})
            return True
    return False


def mark_all_notifications_read(store: RecordStore, now: datetime | None = None) -> int:
    """Mark every unread notification read. Best-effort; returns how many were marked."""
    read_at = to_iso(now or now_local())
    marked = 0
    for row in store.get(NOTIFICATIONS):
        if not isinstance(row, dict) or row.get("readAt") or row.get("id") is None:
            continue
        try:
            store.update(NOTIFICATIONS, row["id"], {**row, "readAt": read_at})
            marked += 1
        except StoreError:
            logger.exception("Failed to mark notification %s read", row["id"])
    return marked


def delete_notifications(store: RecordStore, rows: Iterable[dict]) -> tuple[int, int]:
    """Delete ``rows`` one by one; a failed delete does not stop the rest.

    Returns (deleted, failed).
    """
    deleted = failed = 0
    for row in rows:
        try:
            if store.delete(NOTIFICATIONS, row["id"]):
                deleted += 1
        except StoreError:
            failed += 1
            logger.exception("Failed to delete notification %s (%s)", row["id"], row.get("key"))
    return deleted, failed


def read_notifications_older_than(rows: Iterable[dict], days: int, now: datetime) -> list[dict]:
    """Read notifications whose ``readAt`` is more than ``days`` before ``now``."""
    cutoff = timedelta(days=days)
    stale = []
    for row in rows:
        if not isinstance(row, dict) or row.get("id") is None:
            continue
        read_at = parse_iso(row.get("readAt"), now.tzinfo)
        if read_at is not None and now - read_at > cutoff:
            stale.append(row)
    return stale


def purge_read_notifications(store: RecordStore, older_than_days: object, now: datetime | None = None) -> int:
    """Delete read notifications older than ``older_than_days``; 0 disables the purge."""
    days = clamp_number(older_than_days, 0, 0, 3650)
    if days <= 0:
        return 0
    now = now or now_local()
    deleted, _ = delete_notifications(store, read_notifications_older_than(store.get(NOTIFICATIONS), days, now))
    return deleted
