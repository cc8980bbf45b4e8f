"""Tests for manual export."""

import base64
import json
from datetime import datetime, timezone

import httpx
import pytest

from timeline_engine.exceptions import ExportError
from timeline_engine.schemas.timeline import Asset, Clip, Project
from timeline_engine.services.export_service import (
    ExportService,
    GitHubConfig,
    GitHubContentsTarget,
    build_export_payload,
    export_path,
)


class FakeTarget:
    def __init__(self, sha="abc123", error=None):
        self.sha = sha
        self.error = error
        self.commits = []

    async def commit(self, path, content, message):
        if self.error:
            raise self.error
        self.commits.append((path, content, message))
        return self.sha


@pytest.fixture
def export_project() -> Project:
    return Project(
        id="timeline_x",
        name="My Film",
        assets=[Asset(id="a1", type="video", duration=3, video_data="AAAA", thumbnail_data="BBBB")],
        clips=[Clip(id="c1", duration=2, audio_data="CCCC")],
    )


class TestPayload:
    def test_binary_fields_stripped(self, export_project):
        payload = build_export_payload(export_project, datetime(2026, 1, 2, tzinfo=timezone.utc))
        assert payload["version"] == "1.0"
        assert payload["lastUpdated"] == "2026-01-02T00:00:00+00:00"
        asset = payload["project"]["assets"][0]
        assert "videoData" not in asset
        assert "thumbnailData" not in asset
        assert asset["id"] == "a1"
        assert "audioData" not in payload["project"]["clips"][0]

    def test_path(self, export_project):
        assert export_path(export_project) == "timeline/timeline_x.json"


@pytest.mark.asyncio
class TestExportService:
    async def test_export(self, export_project, settings):
        target = FakeTarget()
        result = await ExportService(target, settings=settings).export(export_project)

        assert result.success
        assert result.commit_sha == "abc123"
        (path, content, message) = target.commits[0]
        assert path == "timeline/timeline_x.json"
        assert message == "Updated timeline: My Film"
        assert json.loads(content)["project"]["name"] == "My Film"

    async def test_failure_reported_not_raised(self, export_project, settings):
        errors = []
        service = ExportService(
            FakeTarget(error=ExportError("GitHub API error: Bad credentials")),
            on_error=errors.append,
            settings=settings,
        )
        result = await service.export(export_project)
        assert not result.success
        assert result.error == "GitHub API error: Bad credentials"
        assert result.details["code"] == "EXPORT_FAILED"
        assert len(errors) == 1

    async def test_not_configured(self, export_project, settings):
        errors = []
        result = await ExportService(on_error=errors.append, settings=settings).export(export_project)
        assert not result.success
        assert result.details["code"] == "EXPORT_NOT_CONFIGURED"
        assert len(errors) == 1


@pytest.mark.asyncio
class TestGitHubContentsTarget:
    @pytest.fixture
    def config(self) -> GitHubConfig:
        return GitHubConfig(token="gh-token", owner="me", repo="films")

    async def test_updates_existing_file(self, config, recording_transport):
        transport = recording_transport(
            [
                httpx.Response(200, json={"sha": "blob-sha"}),
                httpx.Response(200, json={"commit": {"sha": "commit-sha"}}),
            ]
        )
        target = GitHubContentsTarget(config, transport=transport.transport)

        sha = await target.commit("timeline/p.json", '{"a": 1}', "Updated timeline: P")

        assert sha == "commit-sha"
        get, put = transport.requests
        assert get.method == "GET"
        assert get.url.path == "/repos/me/films/contents/timeline/p.json"
        assert get.url.params["ref"] == "main"
        assert put.headers["Authorization"] == "Bearer gh-token"
        body = transport.json_body(1)
        assert body["sha"] == "blob-sha"
        assert body["branch"] == "main"
        assert base64.b64decode(body["content"]).decode() == '{"a": 1}'

    async def test_creates_new_file(self, config, recording_transport):
        transport = recording_transport(
            [
                httpx.Response(404, json={"message": "Not Found"}),
                httpx.Response(201, json={"commit": {"sha": "new-sha"}}),
            ]
        )
        target = GitHubContentsTarget(config, transport=transport.transport)
        assert await target.commit("timeline/p.json", "{}", "msg") == "new-sha"
        assert "sha" not in transport.json_body(1)

    async def test_rejected_write(self, config, recording_transport):
        transport = recording_transport(
            [
                httpx.Response(404),
                httpx.Response(422, json={"message": "Invalid request"}),
            ]
        )
        target = GitHubContentsTarget(config, transport=transport.transport)
        with pytest.raises(ExportError, match="GitHub API error: Invalid request"):
            await target.commit("timeline/p.json", "{}", "msg")
