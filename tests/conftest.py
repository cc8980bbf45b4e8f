"""
Pytest fixtures for timeline engine tests.

Remote calls go through httpx.MockTransport and the local store uses an
in-memory SQLite database, so nothing leaves the process.
"""

import json

import httpx
import pytest

from timeline_engine.config import Settings
from timeline_engine.schemas.timeline import Asset, Project
from timeline_engine.services.local_store import LocalStore
from timeline_engine.services.remote_client import TimelineApiClient
from timeline_engine.services.state_store import TimelineStore
from timeline_engine.services.timeline_actions import TimelineActions


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="http://timeline.test",
        api_token="test-token",
        local_store_url="sqlite://",
        export_github_token="",
        export_github_owner="",
        export_github_repo="",
    )


@pytest.fixture
def project() -> Project:
    return Project(id="timeline_test", name="Test Project")


@pytest.fixture
def store(project) -> TimelineStore:
    return TimelineStore(project)


@pytest.fixture
def actions(store, settings) -> TimelineActions:
    return TimelineActions(store, settings)


@pytest.fixture
def local_store() -> LocalStore:
    store = LocalStore.from_url("sqlite://")
    yield store
    store.close()


@pytest.fixture
def make_asset():
    """Factory for assets with sensible defaults."""

    def _make(**overrides) -> Asset:
        data = {
            "type": "video",
            "url": "https://media.test/clip.mp4",
            "name": "clip",
            "track": 0,
            "track_type": "video",
            "start_time": 0.0,
            "duration": 5.0,
        }
        data.update(overrides)
        return Asset(**data)

    return _make


class RecordingTransport:
    """MockTransport that records requests and replays scripted responses.

    Each script entry is a status code, an httpx.Response, or an exception
    class to raise. When the script runs out, ``default_status`` is used.
    """

    def __init__(self, script=None, default_status: int = 200, body=None):
        self.script = list(script or [])
        self.default_status = default_status
        self.body = body if body is not None else {"success": True}
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.script.pop(0) if self.script else self.default_status
        if isinstance(step, httpx.Response):
            return step
        if isinstance(step, type) and issubclass(step, Exception):
            raise step("scripted failure", request=request)
        return httpx.Response(step, json=self.body)

    @property
    def put_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]

    def json_body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def recording_transport():
    return RecordingTransport


@pytest.fixture
def make_client(settings):
    def _make(transport: RecordingTransport) -> TimelineApiClient:
        return TimelineApiClient(settings=settings, transport=transport.transport)

    return _make
