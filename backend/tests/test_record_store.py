"""Tests for record store implementations."""

import pytest

from shopnotify.notifications.exceptions import StoreError
from shopnotify.records.store import InMemoryRecordStore


class TestInMemoryRecordStore:
    def test_add_assigns_increasing_ids(self, store):
        a = store.add("notifications", {"key": "a"})
        b = store.add("notifications", {"key": "b"})
        assert b["id"] > a["id"]
        assert [r["key"] for r in store.get("notifications")] == ["a", "b"]

    def test_collections_are_separate(self, store):
        store.add("notifications", {"key": "a"})
        assert store.get("calendarEvents") == []

    def test_returned_rows_are_copies(self, store):
        added = store.add("notifications", {"key": "a"})
        added["key"] = "mutated"
        store.get("notifications")[0]["key"] = "mutated"
        assert store.get("notifications")[0]["key"] == "a"

    def test_update_replaces_whole_record(self, store):
        added = store.add("notifications", {"key": "a", "title": "old"})
        store.update("notifications", added["id"], {"key": "a"})
        assert store.get("notifications") == [{"key": "a", "id": added["id"]}]

    def test_update_missing_raises(self, store):
        with pytest.raises(StoreError):
            store.update("notifications", 99, {"key": "a"})

    def test_delete(self, store):
        added = store.add("notifications", {"key": "a"})
        assert store.delete("notifications", added["id"]) is True
        assert store.delete("notifications", added["id"]) is False
        assert store.get("notifications") == []

    def test_initial_rows_keep_their_ids(self):
        seeded = InMemoryRecordStore({"calendarEvents": [{"id": 7, "category": "event"}]})
        assert seeded.get("calendarEvents")[0]["id"] == 7
        assert seeded.add("calendarEvents", {"category": "event"})["id"] == 8


class TestSqlRecordStore:
    def test_add_and_get(self, sql_store):
        added = sql_store.add("notifications", {"key": "a", "title": "Hello"})
        assert added["id"] is not None
        assert sql_store.get("notifications") == [{"key": "a", "title": "Hello", "id": added["id"]}]

    def test_id_in_payload_is_ignored(self, sql_store):
        added = sql_store.add("notifications", {"id": 500, "key": "a"})
        assert added["id"] == 1
        assert sql_store.get("notifications")[0]["id"] == 1

    def test_update(self, sql_store):
        added = sql_store.add("notifications", {"key": "a", "readAt": None})
        sql_store.update("notifications", added["id"], {**added, "readAt": "2026-03-10T12:00:00+01:00"})
        assert sql_store.get("notifications")[0]["readAt"] == "2026-03-10T12:00:00+01:00"

    def test_update_missing_raises(self, sql_store):
        with pytest.raises(StoreError):
            sql_store.update("notifications", 12345, {"key": "a"})

    def test_update_in_other_collection_raises(self, sql_store):
        added = sql_store.add("calendarEvents", {"category": "event"})
        with pytest.raises(StoreError):
            sql_store.update("notifications", added["id"], {"key": "a"})

    def test_delete(self, sql_store):
        added = sql_store.add("notifications", {"key": "a"})
        assert sql_store.delete("notifications", added["id"]) is True
        assert sql_store.delete("notifications", added["id"]) is False
        assert sql_store.get("notifications") == []

    def test_collections_are_separate(self, sql_store):
        sql_store.add("notifications", {"key": "a"})
        sql_store.add("technicians", {"nickname": "Zed"})
        assert len(sql_store.get("notifications")) == 1
        assert sql_store.get("technicians")[0]["nickname"] == "Zed"


class TestInitDb:
    def test_creates_records_table(self):
        from sqlalchemy import inspect

        from shopnotify.database.base import init_db, make_engine

        bind = make_engine("sqlite:///:memory:")
        init_db(bind)
        assert "records" in inspect(bind).get_table_names()

    def test_migrations_create_records_table(self, tmp_path):
        from sqlalchemy import inspect

        from shopnotify.database.base import make_engine, run_migrations

        url = f"sqlite:///{tmp_path / 'migrated.db'}"
        run_migrations(url)

        tables = inspect(make_engine(url)).get_table_names()
        assert "records" in tables
        assert "alembic_version" in tables
