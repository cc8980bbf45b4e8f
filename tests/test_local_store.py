"""Tests for the local durable store."""

import pytest

from timeline_engine.exceptions import LocalStoreError
from timeline_engine.models import Base, LocalEntry
from timeline_engine.schemas.timeline import Asset, Project
from timeline_engine.services.local_store import LocalStore, storage_key


class TestSaveAndLoad:
    def test_round_trip(self, local_store):
        project = Project(id="timeline_a", assets=[Asset(id="a1", type="video", duration=4)])
        saved_at = local_store.save_project(project)

        restored = local_store.load_project("timeline_a")
        assert restored == project
        assert local_store.load_timestamp("timeline_a") == saved_at

    def test_snapshot_is_camel_case(self, local_store):
        local_store.save_project(Project(id="timeline_a", assets=[Asset(type="video", start_time=1)]))
        snapshot = local_store.load_snapshot("timeline_a")
        assert snapshot["assets"][0]["startTime"] == 1

    def test_overwrite(self, local_store):
        local_store.save_project(Project(id="timeline_a", name="first"))
        local_store.save_project(Project(id="timeline_a", name="second"))
        assert local_store.load_project("timeline_a").name == "second"
        assert local_store.list_project_ids() == ["timeline_a"]

    def test_missing(self, local_store):
        assert local_store.load_project("nope") is None
        assert local_store.load_timestamp("nope") is None

    def test_clear(self, local_store):
        local_store.save_project(Project(id="timeline_a"))
        local_store.save_project(Project(id="timeline_b"))
        local_store.clear("timeline_a")
        assert local_store.load_project("timeline_a") is None
        assert local_store.list_project_ids() == ["timeline_b"]


class TestUnreadableSnapshots:
    def _write_raw(self, store: LocalStore, project_id: str, value: str) -> None:
        with store._session() as session:
            session.merge(LocalEntry(key=storage_key(project_id), value=value))

    def test_corrupt_json(self, local_store):
        self._write_raw(local_store, "timeline_bad", "{not json")
        assert local_store.load_snapshot("timeline_bad") is None
        assert local_store.load_project("timeline_bad") is None

    def test_invalid_project(self, local_store):
        self._write_raw(local_store, "timeline_bad", '{"assets": [{"type": "hologram"}]}')
        assert local_store.load_project("timeline_bad") is None


class TestFailuresAndDisabled:
    def test_write_failure_raises(self, local_store):
        Base.metadata.drop_all(local_store.engine)
        with pytest.raises(LocalStoreError):
            local_store.save_project(Project(id="timeline_a"))

    def test_disabled_store_is_inert(self):
        store = LocalStore.from_url("sqlite://", enabled=False)
        assert store.save_project(Project(id="timeline_a")) is None
        assert store.load_project("timeline_a") is None
        store.close()
