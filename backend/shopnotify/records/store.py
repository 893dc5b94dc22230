"""Record store with Protocol pattern for dependency injection.

The engine talks to the host's persistence only through this interface:
named collections of JSON-like records, each with an integer ``id``
assigned by the store. Provides InMemoryRecordStore (tests and embedded
hosts) and SqlRecordStore (SQLAlchemy-backed).
"""

import copy
import logging
from collections import defaultdict
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..notifications.exceptions import StoreError
from .models import StoredRecord

logger = logging.getLogger(__name__)

CALENDAR_EVENTS = "calendarEvents"
TECHNICIANS = "technicians"
NOTIFICATIONS = "notifications"
NOTIFICATION_SETTINGS = "notificationSettings"
SCHEDULE_FINGERPRINTS = "technicianScheduleFingerprints"


class RecordStore(Protocol):
    """Record store interface."""

    def get(self, collection: str) -> list[dict]: ...
    def add(self, collection: str, record: dict) -> dict: ...
    def update(self, collection: str, record_id: int, record: dict) -> dict: ...
    def delete(self, collection: str, record_id: int) -> bool: ...


class InMemoryRecordStore:
    """Process-local store. Returns copies so callers never alias stored rows."""

    def __init__(self, initial: dict[str, list[dict]] | None = None) -> None:
        self._collections: dict[str, list[dict]] = defaultdict(list)
        self._next_id = 1
        for collection, records in (initial or {}).items():
            for record in records:
                self.add(collection, record)

    def get(self, collection: str) -> list[dict]:
        return copy.deepcopy(self._collections[collection])

    def add(self, collection: str, record: dict) -> dict:
        row = copy.deepcopy(record)
        if row.get("id") is None:
            row["id"] = self._next_id
        self._next_id = max(self._next_id, int(row["id"])) + 1
        self._collections[collection].append(row)
        return copy.deepcopy(row)

    def update(self, collection: str, record_id: int, record: dict) -> dict:
        rows = self._collections[collection]
        for idx, row in enumerate(rows):
            if row.get("id") == record_id:
                replaced = copy.deepcopy(record)
                replaced["id"] = record_id
                rows[idx] = replaced
                return copy.deepcopy(replaced)
        raise StoreError(f"{collection}: record {record_id} not found")

    def delete(self, collection: str, record_id: int) -> bool:
        rows = self._collections[collection]
        for idx, row in enumerate(rows):
            if row.get("id") == record_id:
                del rows[idx]
                return True
        return False


class SqlRecordStore:
    """SQLAlchemy-backed store. Every write commits on its own."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, collection: str) -> list[dict]:
        try:
            rows = (
                self._db.query(StoredRecord)
                .filter(StoredRecord.collection == collection)
                .order_by(StoredRecord.id.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StoreError(f"{collection}: read failed") from exc
        return [_to_record(row) for row in rows]

    def add(self, collection: str, record: dict) -> dict:
        payload = {k: v for k, v in record.items() if k != "id"}
        row = StoredRecord(collection=collection, payload=payload)
        try:
            self._db.add(row)
            self._db.commit()
            self._db.refresh(row)
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StoreError(f"{collection}: insert failed") from exc
        return _to_record(row)

    def update(self, collection: str, record_id: int, record: dict) -> dict:
        try:
            row = self._find(collection, record_id)
            if row is None:
                raise StoreError(f"{collection}: record {record_id} not found")
            row.payload = {k: v for k, v in record.items() if k != "id"}
            self._db.commit()
            self._db.refresh(row)
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StoreError(f"{collection}: update of {record_id} failed") from exc
        return _to_record(row)

    def delete(self, collection: str, record_id: int) -> bool:
        try:
            row = self._find(collection, record_id)
            if row is None:
                return False
            self._db.delete(row)
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StoreError(f"{collection}: delete of {record_id} failed") from exc
        return True

    def _find(self, collection: str, record_id: int) -> StoredRecord | None:
        return (
            self._db.query(StoredRecord)
            .filter(StoredRecord.collection == collection, StoredRecord.id == record_id)
            .first()
        )


def _to_record(row: StoredRecord) -> dict:
    return {**(row.payload or {}), "id": row.id}
