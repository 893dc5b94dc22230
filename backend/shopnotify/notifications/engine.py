"""Notification engine: converge the notification store on the desired set.

The host calls ``sync()`` whenever calendar, technician or settings data
changes, and when the app opens. Every run re-reads its sources, computes
the notifications that should exist now, upserts them by dedup key and
sweeps expired records. Runs are synchronous; the caller serializes them.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..integrations.fingerprints import FingerprintStore, create_fingerprint_store
from ..records.store import NOTIFICATIONS, RecordStore
from ..settings.schemas import NotificationSettings
from ..settings.service import SettingsStore
from ..sources.schemas import CalendarEvent, Technician
from ..sources.service import load_calendar_events, load_technicians
from ..utils.datetime import now_local
from .exceptions import SourceReadError, StoreError, SyncError
from .extractors import daily_digest_fact, extract_calendar_facts, extract_schedule_changes
from .reconcile import ReconcileAction, Reconciler
from .retention import RetentionReport, sweep
from .schemas import NotificationRecord

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    desired_keys: set[str] = field(default_factory=set)
    skipped_categories: list[str] = field(default_factory=list)
    retention: RetentionReport = field(default_factory=RetentionReport)

    @property
    def writes(self) -> int:
        return self.inserted + self.updated + self.retention.read_deleted + self.retention.unread_deleted


class NotificationEngine:
    """Entry point for the host: ``sync()`` plus settings load/save."""

    def __init__(
        self,
        store: RecordStore,
        settings_store: SettingsStore | None = None,
        fingerprints: FingerprintStore | None = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self._store = store
        self._clock = clock
        self._settings_store = settings_store or SettingsStore(store, clock=clock)
        self._fingerprints = fingerprints

    # ── Settings ──────────────────────────────────────────────────────

    def load_settings(self) -> NotificationSettings:
        return self._settings_store.load()

    def save_settings(self, next_settings: NotificationSettings | dict) -> NotificationSettings:
        return self._settings_store.save(next_settings)

    # ── Sync ──────────────────────────────────────────────────────────

    def sync(self) -> SyncReport:
        """Run one full reconciliation pass.

        Raises SyncError only when the notification collection is
        unreadable. Source read failures skip the categories that depend on
        that source; write failures are logged and counted.
        """
        settings = self.load_settings()
        now = self._clock()
        report = SyncReport()

        try:
            existing = self._store.get(NOTIFICATIONS)
        except StoreError as exc:
            logger.exception("Notifications unreadable, sync abandoned")
            raise SyncError("notifications collection unreadable") from exc

        reconciler = Reconciler(self._store, existing, now)
        calendar = self._read_source("calendar", load_calendar_events)
        technicians = self._read_source("technicians", load_technicians)

        if calendar is not None:
            digest = daily_digest_fact(calendar, technicians, settings, now)
            if digest is not None:
                self._upsert(reconciler, digest, report)
            for draft in extract_calendar_facts(calendar, settings, now):
                self._upsert(reconciler, draft, report)
        else:
            report.skipped_categories.extend(["daily_digest", "calendar"])

        if settings.tech_schedule_changes_enabled:
            if technicians is not None:
                self._sync_schedule_changes(reconciler, technicians, now, report)
            else:
                report.skipped_categories.append("tech_schedule")

        try:
            report.retention = sweep(self._store, settings, now)
        except StoreError:
            logger.exception("Retention sweep skipped: notifications unreadable")

        logger.info(
            "Notification sync done: %d inserted, %d updated, %d unchanged, %d failed, %d purged",
            report.inserted,
            report.updated,
            report.unchanged,
            report.failed,
            report.retention.read_deleted + report.retention.unread_deleted,
        )
        return report

    def _read_source(
        self,
        name: str,
        loader: Callable[[RecordStore], list],
    ) -> list[CalendarEvent] | list[Technician] | None:
        try:
            return loader(self._store)
        except SourceReadError:
            logger.warning("Source %s unreadable, dependent notifications skipped this run", name, exc_info=True)
            return None

    def _sync_schedule_changes(
        self,
        reconciler: Reconciler,
        technicians: list[Technician],
        now: datetime,
        report: SyncReport,
    ) -> None:
        fingerprints = self._fingerprints or create_fingerprint_store(self._store)
        try:
            changes = extract_schedule_changes(technicians, fingerprints, now)
        except StoreError:
            logger.warning("Schedule fingerprints unreadable, schedule changes skipped", exc_info=True)
            report.skipped_categories.append("tech_schedule")
            return

        for change in changes:
            if not self._upsert(reconciler, change.draft, report):
                # Keep the old fingerprint so the next run retries.
                continue
            try:
                fingerprints.set(change.technician_id, change.fingerprint)
            except StoreError:
                logger.exception("Failed to store schedule fingerprint for technician %s", change.technician_id)

    def _upsert(self, reconciler: Reconciler, draft: NotificationRecord, report: SyncReport) -> bool:
        report.desired_keys.add(draft.key)
        try:
            action = reconciler.upsert(draft)
        except StoreError:
            report.failed += 1
            logger.exception("Failed to write notification %s", draft.key)
            return False
        if action is ReconcileAction.INSERT:
            report.inserted += 1
        elif action is ReconcileAction.UPDATE:
            report.updated += 1
        else:
            report.unchanged += 1
        return True
