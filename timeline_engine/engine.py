"""TimelineEngine: one object wiring store, actions, playback and persistence.

Usage:
    engine = TimelineEngine(settings=get_settings())
    engine.start()                      # autosave (needs a running loop)
    asset_id = engine.actions.add_asset(asset)
    await engine.save()
    ...
    warning = engine.prepare_unload()
    await engine.close()
"""

import logging
from typing import Callable

from timeline_engine.config import Settings, get_settings
from timeline_engine.exceptions import AssetNotFoundError, LocalStoreError, TimelineError
from timeline_engine.schemas.persistence import ExportResult, PersistenceState, SaveStatus
from timeline_engine.schemas.timeline import Asset, Project
from timeline_engine.services import cost_report
from timeline_engine.services.effects_resolver import ActiveAssets
from timeline_engine.services.export_service import ExportService, ExportTarget
from timeline_engine.services.local_store import LocalStore
from timeline_engine.services.playback import PlaybackController
from timeline_engine.services.remote_client import TimelineApiClient
from timeline_engine.services.save_pipeline import SavePipeline
from timeline_engine.services.state_store import TimelineStore
from timeline_engine.services.timeline_actions import TimelineActions, create_empty_project

logger = logging.getLogger(__name__)


class TimelineEngine:
    def __init__(
        self,
        project: Project | None = None,
        *,
        settings: Settings | None = None,
        client: TimelineApiClient | None = None,
        local_store: LocalStore | None = None,
        export_target: ExportTarget | None = None,
        online: bool = True,
        autosave: bool = True,
        on_save_success: Callable[[str], None] | None = None,
        on_save_error: Callable[[TimelineError], None] | None = None,
        on_local_error: Callable[[LocalStoreError], None] | None = None,
        on_status_change: Callable[[SaveStatus], None] | None = None,
        on_export_error: Callable[[TimelineError], None] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.autosave = autosave

        self.store = TimelineStore(
            project or create_empty_project(self.settings),
            min_duration=self.settings.min_timeline_duration_s,
        )
        self.actions = TimelineActions(self.store, self.settings)
        self.playback = PlaybackController(self.store, self.settings)

        if local_store is None and self.settings.enable_local_backup:
            local_store = LocalStore.from_url(
                self.settings.local_store_url, echo=self.settings.local_store_echo
            )
        self.local_store = local_store

        self.saves = SavePipeline(
            self.store,
            client or TimelineApiClient(settings=self.settings),
            self.local_store,
            settings=self.settings,
            online=online,
            on_success=on_save_success,
            on_error=on_save_error,
            on_local_error=on_local_error,
            on_status_change=on_status_change,
        )
        self.exports = ExportService(export_target, on_error=on_export_error, settings=self.settings)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def project(self) -> Project:
        return self.store.project

    @property
    def total_duration(self) -> float:
        return self.store.total_duration

    @property
    def save_status(self) -> SaveStatus:
        return self.saves.status

    def get_asset(self, asset_id: str) -> Asset:
        asset = self.project.get_asset(asset_id)
        if asset is None:
            raise AssetNotFoundError(asset_id)
        return asset

    def persistence_state(self) -> PersistenceState:
        return self.saves.state()

    def active_at(self) -> ActiveAssets:
        return self.playback.active_at()

    def project_cost(self) -> float:
        return cost_report.calculate_project_cost(self.project.assets)

    def cost_breakdown(self) -> dict[str, float]:
        return cost_report.get_cost_breakdown(self.project.assets)

    def asset_counts(self) -> dict[str, int]:
        return cost_report.get_asset_count_by_type(self.project.assets)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start background timers. Must be called from a running event loop."""
        if self.autosave:
            self.saves.start_autosave()

    async def save(self) -> bool:
        return await self.saves.save()

    async def set_online(self, online: bool) -> None:
        await self.saves.set_online(online)

    async def load_project(self, project_id: str) -> Project:
        self.playback.pause()
        return await self.saves.load_project(project_id)

    def restore_local(self, project_id: str | None = None) -> Project | None:
        self.playback.pause()
        return self.saves.restore_local(project_id or self.project.id)

    def clear_local(self) -> None:
        self.saves.clear_local()

    def clear_project(self) -> Project:
        self.playback.pause()
        return self.actions.clear_project()

    async def export(self) -> ExportResult:
        return await self.exports.export(self.project)

    def prepare_unload(self) -> str | None:
        return self.saves.prepare_unload()

    async def close(self) -> None:
        await self.playback.close()
        await self.saves.close()
        if self.local_store is not None:
            self.local_store.close()
        logger.info(f"Timeline engine closed for project {self.project.id}")
