"""End-to-end tests for TimelineEngine wiring."""

import pytest

from timeline_engine import TimelineEngine
from timeline_engine.exceptions import AssetNotFoundError
from timeline_engine.schemas.persistence import SaveStatus
from timeline_engine.schemas.timeline import AudioGenerationMetadata
from timeline_engine.services.save_pipeline import UNSAVED_CHANGES_WARNING


class FakeTarget:
    def __init__(self):
        self.commits = []

    async def commit(self, path, content, message):
        self.commits.append(path)
        return "sha-1"


@pytest.fixture
def engine_parts(settings, project, recording_transport, make_client):
    transport = recording_transport()
    target = FakeTarget()
    engine = TimelineEngine(
        project,
        settings=settings,
        client=make_client(transport),
        export_target=target,
        autosave=False,
    )
    return engine, transport, target


@pytest.mark.asyncio
class TestEngine:
    async def test_edit_save_export(self, engine_parts, make_asset):
        engine, transport, target = engine_parts
        engine.actions.add_asset(make_asset())
        assert engine.save_status == SaveStatus.PENDING

        assert await engine.save()
        assert engine.save_status == SaveStatus.SAVED
        assert len(transport.put_requests) == 1

        result = await engine.export()
        assert result.success
        assert target.commits == ["timeline/timeline_test.json"]
        await engine.close()

    async def test_local_store_built_from_settings(self, engine_parts, make_asset):
        engine, _, _ = engine_parts
        assert engine.local_store is not None
        engine.actions.add_asset(make_asset())
        assert engine.prepare_unload() == UNSAVED_CHANGES_WARNING

        engine.clear_project()
        restored = engine.restore_local("timeline_test")
        assert restored is not None
        assert len(engine.project.assets) == 1
        await engine.close()

    async def test_costs_and_counts(self, engine_parts, make_asset):
        engine, _, _ = engine_parts
        engine.actions.add_asset(
            make_asset(
                type="audio",
                track_type="audio",
                asset_metadata=AudioGenerationMetadata(source_type="ai-voice", credits_used=2),
            )
        )
        assert engine.project_cost() == 2
        assert engine.cost_breakdown()["audio"] == 2
        assert engine.asset_counts()["ai_audio"] == 1
        await engine.close()

    async def test_offline_then_online(self, engine_parts):
        engine, transport, _ = engine_parts
        await engine.set_online(False)
        assert await engine.save() is False
        assert engine.persistence_state().queue_length == 1

        await engine.set_online(True)
        assert len(transport.put_requests) == 1
        assert engine.save_status == SaveStatus.SAVED
        await engine.close()

    async def test_start_and_active_at(self, engine_parts, make_asset, settings, project):
        engine, _, _ = engine_parts
        engine.autosave = True
        engine.start()
        engine.actions.add_asset(make_asset())
        assert len(engine.active_at().assets) == 1
        assert engine.total_duration == 60
        await engine.close()

    async def test_get_asset(self, engine_parts, make_asset):
        engine, _, _ = engine_parts
        asset_id = engine.actions.add_asset(make_asset(name="intro"))
        assert engine.get_asset(asset_id).name == "intro"
        with pytest.raises(AssetNotFoundError):
            engine.get_asset("missing")
        await engine.close()

    async def test_duration_floor_from_settings(self, settings, project, recording_transport, make_client):
        engine = TimelineEngine(
            project,
            settings=settings.model_copy(update={"min_timeline_duration_s": 90}),
            client=make_client(recording_transport()),
            export_target=FakeTarget(),
            autosave=False,
        )
        assert engine.total_duration == 90
        assert engine.playback.jump_to_end() == 90
        await engine.close()
