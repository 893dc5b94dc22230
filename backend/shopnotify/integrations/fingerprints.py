"""Technician schedule fingerprint store with Protocol pattern for dependency injection.

Remembers the last seen schedule fingerprint per technician so a change can
be detected on the next sync. Provides RecordStoreFingerprints (persisted in
the shared record store, visible to every instance) and RedisFingerprints.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

import redis

from ..config import settings
from ..notifications.exceptions import StoreError
from ..records.store import SCHEDULE_FINGERPRINTS, RecordStore
from ..utils.datetime import now_local, to_iso

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "shopnotify:techScheduleHash:"


class FingerprintStore(Protocol):
    """Fingerprint store interface."""

    def get(self, technician_id: str) -> str | None: ...
    def set(self, technician_id: str, fingerprint: str) -> None: ...


class RecordStoreFingerprints:
    """Fingerprints kept as ``technicianScheduleFingerprints`` rows."""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = now_local) -> None:
        self._store = store
        self._clock = clock
        self._rows: dict[str, dict] | None = None

    def get(self, technician_id: str) -> str | None:
        row = self._index().get(technician_id)
        return row.get("fingerprint") if row else None

    def set(self, technician_id: str, fingerprint: str) -> None:
        rows = self._index()
        existing = rows.get(technician_id)
        payload = {
            "technicianId": technician_id,
            "fingerprint": fingerprint,
            "updatedAt": to_iso(self._clock()),
        }
        if existing is not None and existing.get("id") is not None:
            rows[technician_id] = self._store.update(SCHEDULE_FINGERPRINTS, existing["id"], {**existing, **payload})
        else:
            rows[technician_id] = self._store.add(SCHEDULE_FINGERPRINTS, payload)

    def _index(self) -> dict[str, dict]:
        # Loaded once per instance; the engine builds a fresh one per sync.
        if self._rows is None:
            self._rows = {}
            for row in self._store.get(SCHEDULE_FINGERPRINTS):
                if isinstance(row, dict) and row.get("technicianId") is not None:
                    self._rows[str(row["technicianId"])] = row
        return self._rows


class RedisFingerprints:
    """Redis-backed fingerprints, no expiry."""

    def __init__(self, redis_url: str) -> None:
        self._client = redis.from_url(redis_url, decode_responses=True)
        self._client.ping()

    def get(self, technician_id: str) -> str | None:
        try:
            return self._client.get(REDIS_KEY_PREFIX + technician_id)
        except redis.RedisError:
            logger.warning("Redis read failed for technician %s, treating as unseen", technician_id)
            return None

    def set(self, technician_id: str, fingerprint: str) -> None:
        try:
            self._client.set(REDIS_KEY_PREFIX + technician_id, fingerprint)
        except redis.RedisError as exc:
            raise StoreError(f"fingerprint write failed for technician {technician_id}") from exc


def create_fingerprint_store(store: RecordStore) -> FingerprintStore:
    """Factory: pick the fingerprint backend from configuration."""
    if settings.fingerprint_backend == "redis" and settings.redis_url:
        try:
            return RedisFingerprints(settings.redis_url)
        except (redis.RedisError, ValueError):
            logger.warning("Redis unavailable, keeping schedule fingerprints in the record store")
    return RecordStoreFingerprints(store)
