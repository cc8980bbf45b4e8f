"""Tests for the in-memory state store."""

from timeline_engine.schemas.timeline import Project
from timeline_engine.services.state_store import TimelineStore


class TestCommit:
    def test_commit_bumps_revision_and_notifies(self, store):
        changes = []
        store.subscribe(changes.append)
        committed = store.commit(store.project.model_copy(update={"name": "Renamed"}), "rename")

        assert store.revision == 1
        assert store.project is committed
        assert changes[0].reason == "rename"
        assert changes[0].revision == 1

    def test_commit_touches_updated_at(self, store):
        before = store.project.updated_at
        store.commit(store.project, "noop")
        assert store.project.updated_at >= before

    def test_unsubscribe(self, store):
        changes = []
        unsubscribe = store.subscribe(changes.append)
        unsubscribe()
        store.commit(store.project, "noop")
        assert changes == []


class TestReplace:
    def test_resets_session_state(self, store):
        store.selection = {"a"}
        store.playhead_position = 12
        store.clipboard = ["x"]
        store.ripple_mode = True

        project = Project(id="timeline_other")
        store.replace(project, "load")

        assert store.project.id == "timeline_other"
        assert store.selection == set()
        assert store.clipboard == []
        assert store.playhead_position == 0
        assert store.ripple_mode is True

    def test_total_duration(self, store):
        assert store.total_duration == 60

    def test_floor_is_configurable(self):
        store = TimelineStore(Project(duration=10), min_duration=20)
        assert store.total_duration == 20
        store.min_duration = 5
        assert store.total_duration == 10
