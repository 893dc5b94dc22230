"""Retention sweeper: keep the notification collection bounded."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..records.store import NOTIFICATIONS, RecordStore
from ..settings.schemas import NotificationSettings
from ..utils.datetime import parse_iso
from .service import delete_notifications, read_notifications_older_than

logger = logging.getLogger(__name__)


@dataclass
class RetentionReport:
    read_deleted: int = 0
    unread_deleted: int = 0
    failed: int = 0


def stale_unread(rows: list[dict], keep_unread_days: int, now: datetime) -> list[dict]:
    """Unread notifications older than the unread window.

    Age is measured from ``eventAt`` when present, else ``createdAt``. Rows
    with no parseable timestamp are kept.
    """
    cutoff = timedelta(days=keep_unread_days)
    stale = []
    for row in rows:
        if not isinstance(row, dict) or row.get("readAt") or row.get("id") is None:
            continue
        effective = parse_iso(row.get("eventAt"), now.tzinfo) or parse_iso(row.get("createdAt"), now.tzinfo)
        if effective is not None and now - effective > cutoff:
            stale.append(row)
    return stale


def sweep(store: RecordStore, settings: NotificationSettings, now: datetime) -> RetentionReport:
    """Purge old read notifications, then stale unread ones.

    Raises StoreError only when the collection cannot be read; individual
    delete failures are counted and logged.
    """
    report = RetentionReport()
    rows = store.get(NOTIFICATIONS)

    if settings.purge_read_after_days > 0:
        report.read_deleted, failed = delete_notifications(
            store, read_notifications_older_than(rows, settings.purge_read_after_days, now)
        )
        report.failed += failed

    report.unread_deleted, failed = delete_notifications(store, stale_unread(rows, settings.keep_unread_days, now))
    report.failed += failed

    if report.read_deleted or report.unread_deleted:
        logger.info(
            "Retention removed %d read and %d unread notifications",
            report.read_deleted,
            report.unread_deleted,
        )
    return report
