"""Reconciler: upsert notification drafts by dedup key.

A draft either becomes a new record, refreshes the record that shares its
key, or is skipped when nothing would change. ``createdAt`` and ``readAt``
always come from the stored record; reconciliation never un-reads or
re-reads a notification.
"""

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from ..records.store import NOTIFICATIONS, RecordStore
from ..utils.datetime import to_iso
from .schemas import RECONCILER_OWNED_FIELDS, NotificationRecord

logger = logging.getLogger(__name__)

_TEXT_FIELDS = (
    "key",
    "kind",
    "title",
    "message",
    "createdAt",
    "eventAt",
    "source",
    "date",
    "time",
    "orderUrl",
    "trackingUrl",
)
_ID_FIELDS = ("calendarEventId", "workOrderId", "saleId", "customerId")


class ReconcileAction(enum.StrEnum):
    NOOP = "noop"
    INSERT = "insert"
    UPDATE = "update"


@dataclass
class ReconcileResult:
    action: ReconcileAction
    record: dict


def _norm_text(value: object) -> str:
    return "" if value is None else str(value)


def _norm_id(value: object) -> int | str:
    try:
        return int(value or 0)
    except (ValueError, TypeError):
        return str(value)


def records_equal(a: dict, b: dict) -> bool:
    """Field-by-field comparison of the fields the engine owns.

    Missing and empty values compare equal, so a stored row written by an
    older version (or by hand) does not trigger a rewrite.
    """
    if any(_norm_text(a.get(f)) != _norm_text(b.get(f)) for f in _TEXT_FIELDS):
        return False
    if any(_norm_id(a.get(f)) != _norm_id(b.get(f)) for f in _ID_FIELDS):
        return False
    return (a.get("readAt") or None) == (b.get("readAt") or None)


def draft_payload(draft: NotificationRecord) -> dict:
    return draft.model_dump(by_alias=True, mode="json", exclude=RECONCILER_OWNED_FIELDS)


def plan_reconcile(existing: dict | None, draft: NotificationRecord, now: datetime) -> ReconcileResult:
    """Decide NoOp / Insert / Update for ``draft`` against the stored record with its key."""
    payload = draft_payload(draft)
    now_iso = to_iso(now)

    if existing is None or existing.get("id") is None:
        return ReconcileResult(
            ReconcileAction.INSERT,
            {**payload, "createdAt": now_iso, "readAt": None},
        )

    merged = {
        **existing,
        **payload,
        "id": existing["id"],
        "createdAt": existing.get("createdAt") or now_iso,
        "readAt": existing.get("readAt") or None,
    }
    if records_equal(existing, merged):
        return ReconcileResult(ReconcileAction.NOOP, existing)
    return ReconcileResult(ReconcileAction.UPDATE, merged)


class Reconciler:
    """Applies drafts to the ``notifications`` collection for one sync run."""

    def __init__(self, store: RecordStore, existing: Iterable[dict], now: datetime) -> None:
        self._store = store
        self._now = now
        self._by_key: dict[str, dict] = {}
        for row in existing:
            if isinstance(row, dict) and row.get("key"):
                # First row wins if the store already holds duplicates.
                self._by_key.setdefault(str(row["key"]), row)

    def plan(self, draft: NotificationRecord) -> ReconcileResult:
        return plan_reconcile(self._by_key.get(draft.key), draft, self._now)

    def upsert(self, draft: NotificationRecord) -> ReconcileAction:
        """Persist ``draft``. Raises StoreError when the store rejects the write."""
        result = self.plan(draft)
        if result.action is ReconcileAction.INSERT:
            self._by_key[draft.key] = self._store.add(NOTIFICATIONS, result.record)
            logger.debug("Inserted notification %s", draft.key)
        elif result.action is ReconcileAction.UPDATE:
            self._by_key[draft.key] = self._store.update(NOTIFICATIONS, result.record["id"], result.record)
            logger.debug("Updated notification %s", draft.key)
        return result.action
