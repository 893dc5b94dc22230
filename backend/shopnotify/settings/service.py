"""Settings store: load and save the singleton notificationSettings row."""

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import ValidationError

from ..notifications.exceptions import StoreError
from ..records.store import NOTIFICATION_SETTINGS, RecordStore
from ..utils.datetime import now_local, to_iso
from .schemas import NotificationSettings

logger = logging.getLogger(__name__)


class SettingsStore:
    """Read-modify-write access to the single settings row.

    "Singleton" is a storage convention: the first row of the collection
    wins, extra rows are ignored.
    """

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = now_local) -> None:
        self._store = store
        self._clock = clock

    def load(self) -> NotificationSettings:
        """Return the stored settings, or defaults when none exist or the row is unreadable."""
        try:
            first = self._first_row()
        except StoreError:
            logger.warning("Notification settings unreadable, using defaults", exc_info=True)
            return NotificationSettings()
        if first is None:
            return NotificationSettings()
        return self._parse(first)

    def save(self, next_settings: NotificationSettings | dict) -> NotificationSettings:
        """Normalize ``next_settings`` and write it over the singleton row.

        Raises StoreError when the store rejects the write.
        """
        settings = self._parse(
            next_settings.model_dump(by_alias=True)
            if isinstance(next_settings, NotificationSettings)
            else dict(next_settings)
        )
        now_iso = to_iso(self._clock())
        first = self._first_row()

        if first is not None and first.get("id") is not None:
            payload = {**first, **settings.to_record(), "updatedAt": now_iso}
            saved = self._store.update(NOTIFICATION_SETTINGS, first["id"], payload)
        else:
            payload = {**settings.to_record(), "createdAt": now_iso, "updatedAt": now_iso}
            saved = self._store.add(NOTIFICATION_SETTINGS, payload)

        logger.info("Notification settings saved (id=%s)", saved.get("id"))
        return self._parse(saved)

    def _first_row(self) -> dict | None:
        rows = self._store.get(NOTIFICATION_SETTINGS)
        if not isinstance(rows, list):
            raise StoreError(f"{NOTIFICATION_SETTINGS}: expected a list of records")
        for row in rows:
            if isinstance(row, dict):
                return row
        return None

    @staticmethod
    def _parse(raw: dict) -> NotificationSettings:
        try:
            return NotificationSettings.model_validate(raw)
        except ValidationError:
            # Validators coerce every field, so only a structurally broken row ends up here.
            logger.exception("Notification settings row invalid, using defaults")
            return NotificationSettings()
