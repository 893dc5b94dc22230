"""Tests for notification list operations."""

from datetime import timedelta

from shopnotify.notifications.exceptions import StoreError
from shopnotify.notifications.service import (
    get_unread_count,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
    purge_read_notifications,
)
from shopnotify.records.store import NOTIFICATIONS, InMemoryRecordStore


def _seed(store, now):
    store.add(NOTIFICATIONS, {"key": "a", "kind": "event", "title": "A", "createdAt": (now - timedelta(hours=2)).isoformat()})
    store.add(NOTIFICATIONS, {"key": "b", "kind": "consultation", "title": "B", "createdAt": now.isoformat()})
    store.add(
        NOTIFICATIONS,
        {"key": "c", "kind": "daily_digest", "title": "C", "createdAt": (now - timedelta(days=1)).isoformat(),
         "readAt": (now - timedelta(hours=1)).isoformat()},
    )


class TestListNotifications:
    def test_newest_first(self, store, now):
        _seed(store, now)
        assert [n.key for n in list_notifications(store)] == ["b", "a", "c"]

    def test_skips_malformed_rows(self, store, now):
        _seed(store, now)
        store.add(NOTIFICATIONS, {"title": "no key or kind"})
        store.add(NOTIFICATIONS, {"key": "legacy", "kind": "carrier_pigeon"})
        assert len(list_notifications(store)) == 3

    def test_keeps_host_fields(self, store, now):
        store.add(NOTIFICATIONS, {"key": "a", "kind": "event", "pinned": True})
        assert list_notifications(store)[0].model_extra["pinned"] is True


class TestReadState:
    def test_unread_count(self, store, now):
        _seed(store, now)
        assert get_unread_count(store) == 2

    def test_mark_read_and_unread(self, store, now):
        _seed(store, now)
        target = store.get(NOTIFICATIONS)[0]["id"]

        assert mark_notification_read(store, target, True, now) is True
        assert store.get(NOTIFICATIONS)[0]["readAt"] == now.isoformat()

        assert mark_notification_read(store, target, False, now) is True
        assert store.get(NOTIFICATIONS)[0]["readAt"] is None

    def test_mark_unknown_id(self, store, now):
        assert mark_notification_read(store, 404, True, now) is False

    def test_mark_all_read(self, store, now):
        _seed(store, now)
        assert mark_all_notifications_read(store, now) == 2
        assert get_unread_count(store) == 0
        # already-read rows keep their original readAt
        c = [r for r in store.get(NOTIFICATIONS) if r["key"] == "c"][0]
        assert c["readAt"] == (now - timedelta(hours=1)).isoformat()

    def test_mark_all_read_is_best_effort(self, now):
        class FlakyStore(InMemoryRecordStore):
            def update(self, collection, record_id, record):
                if record.get("key") == "a":
                    raise StoreError("locked")
                return super().update(collection, record_id, record)

        store = FlakyStore()
        _seed(store, now)
        assert mark_all_notifications_read(store, now) == 1


class TestPurgeRead:
    def test_purges_older_than(self, store, now):
        store.add(NOTIFICATIONS, {"key": "old", "readAt": (now - timedelta(days=10)).isoformat()})
        store.add(NOTIFICATIONS, {"key": "fresh", "readAt": (now - timedelta(days=1)).isoformat()})
        store.add(NOTIFICATIONS, {"key": "unread", "readAt": None})
        assert purge_read_notifications(store, 7, now) == 1
        assert sorted(r["key"] for r in store.get(NOTIFICATIONS)) == ["fresh", "unread"]

    def test_zero_or_garbage_disables(self, store, now):
        store.add(NOTIFICATIONS, {"key": "old", "readAt": (now - timedelta(days=10)).isoformat()})
        assert purge_read_notifications(store, 0, now) == 0
        assert purge_read_notifications(store, "never", now) == 0
        assert len(store.get(NOTIFICATIONS)) == 1
