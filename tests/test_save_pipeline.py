"""Tests for the save pipeline: local floor, remote upsert, retries, autosave."""

import asyncio
import json

import httpx
import pytest

from timeline_engine.exceptions import (
    LocalStoreError,
    ProjectNotFoundError,
    QueueExhaustedError,
    RemoteLoadError,
    RemoteSaveError,
)
from timeline_engine.models import Base
from timeline_engine.schemas.persistence import SaveStatus
from timeline_engine.schemas.timeline import Project
from timeline_engine.services.local_store import LocalStore, create_local_engine
from timeline_engine.services.retry_queue import RetryOutcome
from timeline_engine.services.save_pipeline import UNSAVED_CHANGES_WARNING, SavePipeline


class CountingLocalStore(LocalStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writes = 0

    def save_project(self, project):
        self.writes += 1
        return super().save_project(project)


class Recorder:
    """Collects callback invocations."""

    def __init__(self):
        self.statuses: list[SaveStatus] = []
        self.errors: list = []
        self.local_errors: list = []
        self.successes: list[str] = []

    def kwargs(self) -> dict:
        return {
            "on_status_change": self.statuses.append,
            "on_error": self.errors.append,
            "on_local_error": self.local_errors.append,
            "on_success": self.successes.append,
        }


class GatedTransport:
    """Fails the first request, then holds the second until released."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.transport = httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = len(self.requests) - 1
        if index == 0:
            return httpx.Response(500, json={"success": False})
        if index == 1:
            self.entered.set()
            await self.release.wait()
        return httpx.Response(200, json={"success": True})


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_pipeline(store, settings, local_store, make_client, recorder):
    def _make(transport, *, online=True, local=local_store, pipeline_settings=None) -> SavePipeline:
        pipeline = SavePipeline(
            store,
            make_client(transport),
            local,
            settings=pipeline_settings or settings,
            online=online,
            **recorder.kwargs(),
        )
        return pipeline

    return _make


@pytest.mark.asyncio
class TestSave:
    async def test_successful_save(self, make_pipeline, recording_transport, actions, make_asset, local_store, recorder):
        transport = recording_transport()
        pipeline = make_pipeline(transport)
        actions.add_asset(make_asset(start_time=2))

        assert await pipeline.save() is True

        (request,) = transport.put_requests
        assert request.url.path == "/api/timeline/project/timeline_test"
        assert request.headers["Authorization"] == "Bearer test-token"
        assert transport.json_body()["assets"][0]["startTime"] == 2
        assert pipeline.status == SaveStatus.SAVED
        assert recorder.statuses[-2:] == [SaveStatus.SAVING, SaveStatus.SAVED]
        assert len(recorder.successes) == 1
        assert local_store.load_project("timeline_test") is not None
        await pipeline.close()

    async def test_offline_save_is_local_only(self, make_pipeline, recording_transport, local_store, recorder):
        """Offline: no remote call, the snapshot is written locally and queued."""
        transport = recording_transport()
        pipeline = make_pipeline(transport, online=False)

        assert await pipeline.save() is False

        assert transport.requests == []
        assert local_store.load_project("timeline_test") is not None
        assert len(pipeline.queue) == 1
        assert recorder.statuses == [SaveStatus.SAVING, SaveStatus.OFFLINE]
        assert pipeline.state().last_error == "Offline, save queued for retry"
        await pipeline.close()

    async def test_http_failure_queues(self, make_pipeline, recording_transport, recorder):
        pipeline = make_pipeline(recording_transport(default_status=500))

        assert await pipeline.save() is False

        assert pipeline.status == SaveStatus.FAILED
        assert len(pipeline.queue) == 1
        (error,) = recorder.errors
        assert isinstance(error, RemoteSaveError)
        assert error.status_code == 500
        assert pipeline.state().last_error == "Save failed: HTTP 500"
        await pipeline.close()

    async def test_newer_success_drops_queued_snapshots(self, make_pipeline, recording_transport):
        pipeline = make_pipeline(recording_transport([500, 200]))
        await pipeline.save()
        assert len(pipeline.queue) == 1

        assert await pipeline.save() is True
        assert len(pipeline.queue) == 0
        assert pipeline.status == SaveStatus.SAVED
        await pipeline.close()

    async def test_local_failure_does_not_block_remote(
        self, make_pipeline, recording_transport, local_store, recorder
    ):
        transport = recording_transport()
        pipeline = make_pipeline(transport)
        Base.metadata.drop_all(local_store.engine)

        assert await pipeline.save() is True

        assert len(transport.put_requests) == 1
        assert isinstance(recorder.local_errors[0], LocalStoreError)
        assert pipeline.state().last_local_error is not None
        await pipeline.close()

    async def test_edit_after_save_is_pending(self, make_pipeline, recording_transport, actions, make_asset):
        pipeline = make_pipeline(recording_transport())
        await pipeline.save()
        actions.add_asset(make_asset())
        assert pipeline.status == SaveStatus.PENDING
        await pipeline.close()

    async def test_save_after_close(self, make_pipeline, recording_transport):
        transport = recording_transport()
        pipeline = make_pipeline(transport)
        await pipeline.close()
        assert await pipeline.save() is False
        assert transport.requests == []


@pytest.mark.asyncio
class TestAutosave:
    async def test_six_ticks_one_remote_write(self, make_pipeline, recording_transport):
        """Every tick writes locally; only the sixth syncs remotely."""
        counting = CountingLocalStore(create_local_engine("sqlite://"))
        transport = recording_transport()
        pipeline = make_pipeline(transport, local=counting)

        for _ in range(5):
            await pipeline.autosave_tick()
        assert counting.writes == 5
        assert transport.put_requests == []

        await pipeline.autosave_tick()
        assert counting.writes == 6
        assert len(transport.put_requests) == 1
        await pipeline.close()
        counting.close()

    async def test_start_and_stop(self, make_pipeline, recording_transport):
        pipeline = make_pipeline(recording_transport())
        pipeline.start_autosave()
        assert pipeline._autosave_task is not None
        pipeline.stop_autosave()
        assert pipeline._autosave_task is None
        await pipeline.close()


@pytest.mark.asyncio
class TestRetryAndConnectivity:
    async def test_back_online_flushes_in_order(
        self, make_pipeline, recording_transport, actions, make_asset
    ):
        transport = recording_transport()
        pipeline = make_pipeline(transport, online=False)
        await pipeline.save()
        actions.add_asset(make_asset())
        await pipeline.save()
        assert len(pipeline.queue) == 2

        await pipeline.set_online(True)

        assert len(transport.put_requests) == 2
        assert len(transport.json_body(0)["assets"]) == 0
        assert len(transport.json_body(1)["assets"]) == 1
        assert len(pipeline.queue) == 0
        assert pipeline.status == SaveStatus.SAVED
        await pipeline.close()

    async def test_going_offline(self, make_pipeline, recording_transport, recorder):
        pipeline = make_pipeline(recording_transport())
        await pipeline.set_online(False)
        assert pipeline.status == SaveStatus.OFFLINE
        assert not pipeline.state().is_online
        await pipeline.close()

    async def test_retry_skipped_while_offline(self, make_pipeline, recording_transport):
        transport = recording_transport()
        pipeline = make_pipeline(transport, online=False)
        await pipeline.save()
        await pipeline.process_retry_queue(ignore_backoff=True)
        assert transport.requests == []
        await pipeline.close()

    async def test_exhaustion_reported(self, make_pipeline, recording_transport, settings, recorder):
        pipeline = make_pipeline(
            recording_transport(default_status=503),
            pipeline_settings=settings.model_copy(update={"retry_max_attempts": 2}),
        )
        await pipeline.save()
        assert await pipeline.flush() is False
        assert len(pipeline.queue) == 1

        assert await pipeline.flush() is True
        assert isinstance(recorder.errors[-1], QueueExhaustedError)
        assert pipeline.status == SaveStatus.FAILED
        await pipeline.close()

    async def test_retry_recovers(self, make_pipeline, recording_transport):
        pipeline = make_pipeline(recording_transport([500, 200]))
        await pipeline.save()
        assert await pipeline.flush() is True
        assert pipeline.status == SaveStatus.SAVED
        await pipeline.close()

    async def test_direct_save_waits_for_retry_in_flight(self, make_pipeline, actions, make_asset):
        """A retry already sending finishes before a newer save goes out."""
        transport = GatedTransport()
        pipeline = make_pipeline(transport)
        await pipeline.save()
        assert len(pipeline.queue) == 1

        retry = asyncio.create_task(pipeline.process_retry_queue(ignore_backoff=True))
        await transport.entered.wait()
        actions.add_asset(make_asset())
        save = asyncio.create_task(pipeline.save())
        await asyncio.sleep(0.01)
        assert not save.done()
        assert len(transport.requests) == 2

        transport.release.set()
        assert await retry == RetryOutcome.SUCCEEDED
        assert await save is True

        bodies = [json.loads(r.content) for r in transport.requests]
        assert [len(body["assets"]) for body in bodies] == [0, 0, 1]
        assert not pipeline.queue
        assert pipeline.status == SaveStatus.SAVED
        await pipeline.close()

    async def test_sweep_parks_while_offline(self, make_pipeline, recording_transport, settings):
        transport = recording_transport()
        pipeline = make_pipeline(
            transport,
            online=False,
            pipeline_settings=settings.model_copy(update={"retry_sweep_interval_s": 0.01}),
        )
        calls = []
        process = pipeline.process_retry_queue

        async def counting_process(**kwargs):
            calls.append(kwargs)
            return await process(**kwargs)

        pipeline.process_retry_queue = counting_process
        await pipeline.save()
        await asyncio.sleep(0.05)
        assert calls == []
        assert not pipeline._sweep_task.done()

        await pipeline.set_online(True)
        assert not pipeline.queue
        assert len(transport.put_requests) == 1
        await pipeline.close()


@pytest.mark.asyncio
class TestLoadAndRestore:
    async def test_load_project(self, make_pipeline, recording_transport, store):
        remote = Project(id="timeline_remote", name="Remote")
        pipeline = make_pipeline(recording_transport(body={"project": remote.to_wire()}))

        project = await pipeline.load_project("timeline_remote")

        assert project.name == "Remote"
        assert store.project.id == "timeline_remote"
        assert pipeline.status == SaveStatus.SAVED
        assert pipeline.prepare_unload() is None
        await pipeline.close()

    async def test_load_missing(self, make_pipeline, recording_transport):
        pipeline = make_pipeline(recording_transport(default_status=404))
        with pytest.raises(ProjectNotFoundError):
            await pipeline.load_project("timeline_remote")
        await pipeline.close()

    async def test_load_invalid(self, make_pipeline, recording_transport):
        pipeline = make_pipeline(recording_transport(body={"project": {"assets": [{"type": "hologram"}]}}))
        with pytest.raises(RemoteLoadError):
            await pipeline.load_project("timeline_remote")
        await pipeline.close()

    async def test_restore_local_is_pending(
        self, make_pipeline, recording_transport, actions, make_asset, store
    ):
        pipeline = make_pipeline(recording_transport())
        actions.add_asset(make_asset(name="kept"))
        pipeline.save_local()
        store.replace(Project(id="timeline_test"))

        project = pipeline.restore_local("timeline_test")

        assert project.assets[0].name == "kept"
        assert pipeline.status == SaveStatus.PENDING
        await pipeline.close()

    async def test_clear_local(self, make_pipeline, recording_transport, local_store):
        pipeline = make_pipeline(recording_transport())
        pipeline.save_local()
        pipeline.clear_local()
        assert local_store.load_project("timeline_test") is None
        await pipeline.close()


@pytest.mark.asyncio
class TestUnload:
    async def test_clean_session(self, make_pipeline, recording_transport):
        pipeline = make_pipeline(recording_transport())
        await pipeline.save()
        assert pipeline.prepare_unload() is None
        await pipeline.close()

    async def test_unsaved_edits_warn(self, make_pipeline, recording_transport, actions, make_asset, local_store):
        pipeline = make_pipeline(recording_transport())
        actions.add_asset(make_asset())
        assert pipeline.prepare_unload() == UNSAVED_CHANGES_WARNING
        assert local_store.load_project("timeline_test").assets
        await pipeline.close()

    async def test_queued_work_warns(self, make_pipeline, recording_transport):
        pipeline = make_pipeline(recording_transport(), online=False)
        await pipeline.save()
        assert pipeline.prepare_unload() == UNSAVED_CHANGES_WARNING
        await pipeline.close()
