"""Manual export of a project to a user-owned repository.

Export is a one-shot user action, separate from autosave: failures are
returned and reported, never queued for retry.
"""

import base64
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

import httpx

from timeline_engine.config import Settings, get_settings
from timeline_engine.exceptions import ExportError, ExportNotConfiguredError, TimelineError
from timeline_engine.schemas.persistence import ExportResult
from timeline_engine.schemas.timeline import Project

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1.0"
BINARY_FIELDS = frozenset({"videoData", "audioData", "thumbnailData"})


class ExportTarget(Protocol):
    async def commit(self, path: str, content: str, message: str) -> str | None:
        """Write ``content`` at ``path``; return a revision id if the target has one."""
        ...


@dataclass
class GitHubConfig:
    token: str
    owner: str
    repo: str
    branch: str = "main"
    api_url: str = "https://api.github.com"

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.owner and self.repo)


class GitHubContentsTarget:
    """Create or update a file through the GitHub contents API."""

    def __init__(
        self,
        config: GitHubConfig,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "GitHubContentsTarget":
        settings = settings or get_settings()
        config = GitHubConfig(
            token=settings.export_github_token,
            owner=settings.export_github_owner,
            repo=settings.export_github_repo,
            branch=settings.export_github_branch,
            api_url=settings.export_github_api_url,
        )
        return cls(config, timeout=settings.export_timeout, **kwargs)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {self.config.token}",
                "Accept": "application/vnd.github.v3+json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )

    async def commit(self, path: str, content: str, message: str) -> str | None:
        """Upsert a file. Returns the commit SHA.

        Raises:
            ExportNotConfiguredError: Token, owner or repo missing
            ExportError: GitHub rejected the write or the request failed
        """
        if not self.config.is_configured:
            raise ExportNotConfiguredError()

        url = f"/repos/{self.config.owner}/{self.config.repo}/contents/{path}"
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.config.branch,
        }

        try:
            async with self._client() as client:
                # Existing files need their blob SHA to be updated
                existing = await client.get(url, params={"ref": self.config.branch})
                if existing.is_success:
                    body["sha"] = existing.json().get("sha")

                resp = await client.put(url, json=body)
        except httpx.HTTPError as e:
            raise ExportError(f"GitHub request failed: {e}") from e

        if not resp.is_success:
            try:
                detail = resp.json().get("message") or resp.reason_phrase
            except ValueError:
                detail = resp.reason_phrase
            raise ExportError(f"GitHub API error: {detail}")

        sha = resp.json().get("commit", {}).get("sha")
        logger.info(f"Exported {path} to {self.config.owner}/{self.config.repo} ({sha})")
        return sha


def _strip_binary(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k not in BINARY_FIELDS}


def build_export_payload(project: Project, exported_at: datetime | None = None) -> dict[str, Any]:
    """Export document: format version, timestamp and the project without embedded media."""
    exported_at = exported_at or datetime.now(timezone.utc)
    data = project.to_wire()
    data["clips"] = [_strip_binary(c) for c in data.get("clips", [])]
    data["assets"] = [_strip_binary(a) for a in data.get("assets", [])]
    return {
        "version": EXPORT_FORMAT_VERSION,
        "lastUpdated": exported_at.isoformat(),
        "project": data,
    }


def export_path(project: Project) -> str:
    return f"timeline/{project.id}.json"


class ExportService:
    def __init__(
        self,
        target: ExportTarget | None = None,
        *,
        on_error: Callable[[TimelineError], None] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.target = target or GitHubContentsTarget.from_settings(settings)
        self.on_error = on_error

    async def export(self, project: Project) -> ExportResult:
        """Write the project to the export target once."""
        exported_at = datetime.now(timezone.utc)
        path = export_path(project)
        content = json.dumps(build_export_payload(project, exported_at), indent=2)
        message = f"Updated timeline: {project.name}"

        try:
            sha = await self.target.commit(path, content, message)
        except ExportNotConfiguredError as e:
            logger.info("Export target not configured - connect your repository in settings")
            return self._failed(e, path)
        except ExportError as e:
            logger.error(f"Export of project {project.id} failed: {e.message}")
            return self._failed(e, path)

        return ExportResult(success=True, path=path, commit_sha=sha, exported_at=exported_at)

    def _failed(self, error: ExportError, path: str) -> ExportResult:
        if self.on_error:
            self.on_error(error)
        return ExportResult(success=False, path=path, error=error.message, details=error.to_dict())
