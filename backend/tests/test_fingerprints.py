"""Tests for technician schedule fingerprint stores."""

from unittest.mock import MagicMock, patch

import pytest
import redis

from shopnotify.config import settings
from shopnotify.integrations.fingerprints import (
    REDIS_KEY_PREFIX,
    RecordStoreFingerprints,
    RedisFingerprints,
    create_fingerprint_store,
)
from shopnotify.notifications.engine import NotificationEngine
from shopnotify.notifications.exceptions import StoreError
from shopnotify.records.store import SCHEDULE_FINGERPRINTS


class TestRecordStoreFingerprints:
    def test_unknown_technician(self, store, clock):
        assert RecordStoreFingerprints(store, clock=clock).get("1") is None

    def test_set_then_get(self, store, clock):
        fingerprints = RecordStoreFingerprints(store, clock=clock)
        fingerprints.set("1", "abc")
        assert fingerprints.get("1") == "abc"
        assert store.get(SCHEDULE_FINGERPRINTS)[0]["technicianId"] == "1"

    def test_overwrite_keeps_one_row(self, store, clock):
        fingerprints = RecordStoreFingerprints(store, clock=clock)
        fingerprints.set("1", "abc")
        fingerprints.set("1", "def")
        rows = store.get(SCHEDULE_FINGERPRINTS)
        assert len(rows) == 1
        assert rows[0]["fingerprint"] == "def"
        assert rows[0]["updatedAt"] == clock.now.isoformat()

    def test_visible_to_other_instances(self, store, clock):
        RecordStoreFingerprints(store, clock=clock).set("7", "abc")
        assert RecordStoreFingerprints(store, clock=clock).get("7") == "abc"


class TestRedisFingerprints:
    def _make(self):
        client = MagicMock()
        with patch("shopnotify.integrations.fingerprints.redis.from_url", return_value=client):
            fingerprints = RedisFingerprints("redis://localhost:6379/0")
        return fingerprints, client

    def test_get_uses_prefixed_key(self):
        fingerprints, client = self._make()
        client.get.return_value = "abc"
        assert fingerprints.get("1") == "abc"
        client.get.assert_called_once_with(REDIS_KEY_PREFIX + "1")

    def test_set_without_expiry(self):
        fingerprints, client = self._make()
        fingerprints.set("1", "abc")
        client.set.assert_called_once_with(REDIS_KEY_PREFIX + "1", "abc")

    def test_read_failure_means_unseen(self):
        fingerprints, client = self._make()
        client.get.side_effect = redis.ConnectionError("down")
        assert fingerprints.get("1") is None

    def test_write_failure_raises_store_error(self):
        fingerprints, client = self._make()
        client.set.side_effect = redis.ConnectionError("down")
        with pytest.raises(StoreError):
            fingerprints.set("1", "abc")


class TestCreateFingerprintStore:
    def test_defaults_to_record_store(self, store, monkeypatch):
        monkeypatch.setattr(settings, "fingerprint_backend", "store")
        assert isinstance(create_fingerprint_store(store), RecordStoreFingerprints)

    def test_redis_backend(self, store, monkeypatch):
        monkeypatch.setattr(settings, "fingerprint_backend", "redis")
        monkeypatch.setattr(settings, "redis_url", "redis://localhost:6379/0")
        with patch("shopnotify.integrations.fingerprints.redis.from_url", return_value=MagicMock()):
            assert isinstance(create_fingerprint_store(store), RedisFingerprints)

    def test_unreachable_redis_falls_back(self, store, monkeypatch):
        monkeypatch.setattr(settings, "fingerprint_backend", "redis")
        monkeypatch.setattr(settings, "redis_url", "redis://localhost:6379/0")
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("shopnotify.integrations.fingerprints.redis.from_url", return_value=client):
            assert isinstance(create_fingerprint_store(store), RecordStoreFingerprints)

    def test_redis_without_url_falls_back(self, store, monkeypatch):
        monkeypatch.setattr(settings, "fingerprint_backend", "redis")
        monkeypatch.setattr(settings, "redis_url", "")
        assert isinstance(create_fingerprint_store(store), RecordStoreFingerprints)

    def test_malformed_redis_url_falls_back(self, store, monkeypatch):
        monkeypatch.setattr(settings, "fingerprint_backend", "redis")
        monkeypatch.setattr(settings, "redis_url", "localhost:6379")
        assert isinstance(create_fingerprint_store(store), RecordStoreFingerprints)

    def test_malformed_redis_url_does_not_break_sync(self, store, clock, monkeypatch):
        monkeypatch.setattr(settings, "fingerprint_backend", "redis")
        monkeypatch.setattr(settings, "redis_url", "localhost:6379")
        store.add("technicians", {"id": 1, "schedule": {}})

        NotificationEngine(store, clock=clock).sync()

        assert [r["technicianId"] for r in store.get(SCHEDULE_FINGERPRINTS)] == ["1"]
