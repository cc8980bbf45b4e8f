"""HTTP client for the remote timeline API."""

import logging
from typing import Any, Callable

import httpx

from timeline_engine.config import Settings, get_settings
from timeline_engine.exceptions import ProjectNotFoundError, RemoteLoadError, RemoteSaveError

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


class TimelineApiClient:
    """Idempotent upsert/read of whole project snapshots.

    The bearer credential comes from ``token`` or, when given,
    ``token_provider`` (read on every request so a refreshed token is
    picked up). ``transport`` lets tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        token_provider: TokenProvider | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._token = token if token is not None else settings.api_token
        self._token_provider = token_provider
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _auth_headers(self) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else self._token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    @staticmethod
    def project_path(project_id: str) -> str:
        return f"/api/timeline/project/{project_id}"

    async def upsert_project(self, project_id: str, snapshot: dict[str, Any]) -> None:
        """PUT the full snapshot.

        Raises:
            RemoteSaveError: Non-2xx response, transport error or timeout
        """
        try:
            resp = await self._get_client().put(
                self.project_path(project_id),
                json=snapshot,
                headers=self._auth_headers(),
            )
        except httpx.TimeoutException as e:
            raise RemoteSaveError(f"Save timed out: {e}") from e
        except httpx.HTTPError as e:
            raise RemoteSaveError(f"Save failed: {e}") from e

        if not resp.is_success:
            raise RemoteSaveError(status_code=resp.status_code)
        logger.debug(f"Upserted project {project_id} (HTTP {resp.status_code})")

    async def get_project(self, project_id: str) -> dict[str, Any]:
        """GET a project snapshot (the ``project`` member of the response).

        Raises:
            ProjectNotFoundError: HTTP 404
            RemoteLoadError: Any other failure
        """
        try:
            resp = await self._get_client().get(
                self.project_path(project_id),
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as e:
            raise RemoteLoadError(f"Failed to load project: {e}") from e

        if resp.status_code == 404:
            raise ProjectNotFoundError(project_id)
        if not resp.is_success:
            raise RemoteLoadError(
                f"Failed to load project: HTTP {resp.status_code}", status_code=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteLoadError(f"Failed to load project: invalid JSON ({e})") from e

        project = data.get("project") if isinstance(data, dict) else None
        if not isinstance(project, dict):
            raise RemoteLoadError("Failed to load project: response has no project")
        return project

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
