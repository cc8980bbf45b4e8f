"""Save pipeline: local floor, remote upsert, retry queue, autosave.

Every save writes the full project to the local store first, then tries
the remote API. A snapshot that cannot reach the remote (offline, HTTP
error, timeout) goes to the retry queue, which a background sweep drains
with exponential backoff. Autosave writes locally on every tick and syncs
remotely on every Nth tick.

Status transitions:
    saved   -> pending   an edit is committed
    *       -> saving    a remote attempt starts
    saving  -> saved     upsert succeeded and nothing newer is waiting
    saving  -> pending   upsert succeeded but newer edits or queued work exist
    saving  -> offline   offline, snapshot queued without an attempt
    saving  -> failed    upsert failed (snapshot queued) or retries exhausted
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from pydantic import ValidationError

from timeline_engine.config import Settings, get_settings
from timeline_engine.exceptions import (
    LocalStoreError,
    OfflineDeferralError,
    PersistenceError,
    QueueExhaustedError,
    RemoteLoadError,
    TimelineError,
)
from timeline_engine.schemas.persistence import PersistenceState, SaveQueueItem, SaveStatus
from timeline_engine.schemas.timeline import Project
from timeline_engine.services.local_store import LocalStore
from timeline_engine.services.remote_client import TimelineApiClient
from timeline_engine.services.retry_queue import RetryOutcome, RetryQueue
from timeline_engine.services.state_store import StoreChange, TimelineStore

logger = logging.getLogger(__name__)

UNSAVED_CHANGES_WARNING = "You have unsaved changes. Are you sure you want to leave?"


class SavePipeline:
    def __init__(
        self,
        store: TimelineStore,
        client: TimelineApiClient,
        local_store: LocalStore | None = None,
        *,
        settings: Settings | None = None,
        retry_queue: RetryQueue | None = None,
        online: bool = True,
        on_success: Callable[[str], None] | None = None,
        on_error: Callable[[TimelineError], None] | None = None,
        on_local_error: Callable[[LocalStoreError], None] | None = None,
        on_status_change: Callable[[SaveStatus], None] | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.local_store = local_store
        self.settings = settings or get_settings()
        self.queue = retry_queue or RetryQueue(
            base_delay=self.settings.retry_base_delay_s,
            max_delay=self.settings.retry_max_delay_s,
            max_attempts=self.settings.retry_max_attempts,
        )

        self.on_success = on_success
        self.on_error = on_error
        self.on_local_error = on_local_error
        self.on_status_change = on_status_change

        self._status = SaveStatus.SAVED if online else SaveStatus.OFFLINE
        self._is_online = online
        self._saved_revision = store.revision
        self._tick_count = 0
        self._closed = False

        self.last_saved_at: datetime | None = None
        self.last_error: str | None = None
        self.last_local_error: str | None = None

        self._autosave_task: asyncio.Task | None = None
        self._sweep_task: asyncio.Task | None = None
        # Remote writes (direct saves and retries) go out one at a time
        self._remote_lock = asyncio.Lock()
        self._online_event = asyncio.Event()
        if online:
            self._online_event.set()
        self._unsubscribe = store.subscribe(self._on_store_change)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def is_online(self) -> bool:
        return self._is_online

    def state(self) -> PersistenceState:
        return PersistenceState(
            status=self._status,
            is_online=self._is_online,
            last_saved_at=self.last_saved_at,
            queue_length=len(self.queue),
            last_error=self.last_error,
            last_local_error=self.last_local_error,
        )

    def _set_status(self, status: SaveStatus) -> None:
        if status == self._status:
            return
        logger.debug(f"Save status {self._status.value} -> {status.value}")
        self._status = status
        if self.on_status_change:
            self.on_status_change(status)

    def _settled_status(self) -> SaveStatus:
        if self.queue or self.store.revision != self._saved_revision:
            return SaveStatus.PENDING
        return SaveStatus.SAVED

    def _on_store_change(self, change: StoreChange) -> None:
        if self._status == SaveStatus.SAVED and change.revision != self._saved_revision:
            self._set_status(SaveStatus.PENDING)

    def _mark_saved(self, revision: int | None) -> None:
        if revision is not None:
            self._saved_revision = max(self._saved_revision, revision)
        self.last_saved_at = datetime.now(timezone.utc)
        self.last_error = None
        self._set_status(self._settled_status())
        if self.on_success:
            self.on_success(self.last_saved_at.isoformat())

    def _report_error(self, error: TimelineError) -> None:
        self.last_error = error.message
        if self.on_error:
            self.on_error(error)

    # ------------------------------------------------------------------
    # Local floor
    # ------------------------------------------------------------------

    def save_local(self, project: Project | None = None) -> bool:
        """Write the project to the local store.

        Failures are recorded and reported but never raised: the local
        write must not block the remote path.
        """
        if self.local_store is None or not self.local_store.enabled:
            return False

        project = project or self.store.project
        try:
            self.local_store.save_project(project)
        except LocalStoreError as e:
            self.last_local_error = e.message
            if self.on_local_error:
                self.on_local_error(e)
            return False

        self.last_local_error = None
        return True

    # ------------------------------------------------------------------
    # Remote path
    # ------------------------------------------------------------------

    async def save(self) -> bool:
        """Save now: local write, then remote upsert (or queue on failure)."""
        if self._closed:
            return False

        project = self.store.project
        revision = self.store.revision
        self._set_status(SaveStatus.SAVING)
        self.save_local(project)
        return await self._sync_remote(project, revision)

    def _queue_snapshot(self, project: Project, snapshot: dict, revision: int) -> None:
        self.queue.enqueue(project.id, snapshot, revision)
        self._ensure_sweep()

    async def _sync_remote(self, project: Project, revision: int) -> bool:
        self._set_status(SaveStatus.SAVING)
        snapshot = project.to_wire()

        if not self._is_online:
            logger.info(f"Offline, queuing save of project {project.id} for retry")
            self._queue_snapshot(project, snapshot, revision)
            self.last_error = OfflineDeferralError.message
            self._set_status(SaveStatus.OFFLINE)
            return False

        try:
            async with self._remote_lock:
                await self.client.upsert_project(project.id, snapshot)
        except PersistenceError as e:
            logger.error(f"Error saving project {project.id}: {e.message}")
            self._queue_snapshot(project, snapshot, revision)
            self._set_status(SaveStatus.FAILED)
            self._report_error(e)
            return False

        self.queue.discard_project(project.id)
        logger.info(f"Project {project.id} saved successfully")
        self._mark_saved(revision)
        return True

    async def _send_item(self, item: SaveQueueItem) -> None:
        await self.client.upsert_project(item.project_id, item.snapshot)

    async def process_retry_queue(self, *, ignore_backoff: bool = False) -> RetryOutcome:
        """Retry the head of the queue once (if due and online)."""
        async with self._remote_lock:
            head = self.queue.peek()
            if head is None:
                return RetryOutcome.EMPTY
            if not self._is_online:
                logger.info("Offline, skipping retry queue")
                return RetryOutcome.NOT_DUE

            outcome = await self.queue.process_head(self._send_item, ignore_backoff=ignore_backoff)

        if outcome == RetryOutcome.SUCCEEDED:
            current = head.project_id == self.store.project.id
            self._mark_saved(head.revision if current else None)
        elif outcome == RetryOutcome.FAILED:
            self.last_error = head.last_error
        elif outcome == RetryOutcome.EXHAUSTED:
            self._set_status(SaveStatus.FAILED)
            self._report_error(QueueExhaustedError(head.project_id, head.retry_count))
        return outcome

    async def flush(self) -> bool:
        """Retry every queued item now, stopping at the first failure.

        Returns True when the queue ends up empty.
        """
        while self.queue:
            outcome = await self.process_retry_queue(ignore_backoff=True)
            if outcome not in (RetryOutcome.SUCCEEDED, RetryOutcome.EXHAUSTED, RetryOutcome.SUPERSEDED):
                break
        return not self.queue

    async def set_online(self, online: bool) -> None:
        """Connectivity changed. Coming back online flushes the queue immediately."""
        if online == self._is_online and online:
            return
        self._is_online = online

        if not online:
            self._online_event.clear()
            logger.info("Went offline")
            self._set_status(SaveStatus.OFFLINE)
            return

        logger.info("Back online")
        self._online_event.set()
        if self.queue:
            logger.info(f"Processing {len(self.queue)} queued save(s)")
            await self.flush()
        # FAILED here means a queued snapshot was just dropped; keep reporting it
        if self._status != SaveStatus.FAILED:
            self._set_status(self._settled_status())

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _ensure_sweep(self) -> None:
        if self._closed or (self._sweep_task is not None and not self._sweep_task.done()):
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def _sweep_loop(self) -> None:
        while self.queue:
            if not self._is_online:
                # Parked until set_online(True)
                await self._online_event.wait()
                continue
            await asyncio.sleep(self.settings.retry_sweep_interval_s)
            await self.process_retry_queue()
        logger.debug("Retry queue empty, sweep stopped")

    async def autosave_tick(self) -> None:
        """One autosave cycle: always local, remote on every Nth tick."""
        project = self.store.project
        revision = self.store.revision
        self.save_local(project)

        self._tick_count += 1
        if self._tick_count >= self.settings.remote_save_every_n_ticks:
            self._tick_count = 0
            await self._sync_remote(project, revision)

    def start_autosave(self) -> None:
        if self._autosave_task is not None and not self._autosave_task.done():
            return
        self._autosave_task = asyncio.get_running_loop().create_task(self._autosave_loop())
        logger.info(
            f"Autosave started (local every {self.settings.autosave_interval_s}s, "
            f"remote every {self.settings.remote_save_every_n_ticks} ticks)"
        )

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.autosave_interval_s)
            await self.autosave_tick()

    def stop_autosave(self) -> None:
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            self._autosave_task = None

    # ------------------------------------------------------------------
    # Load / restore
    # ------------------------------------------------------------------

    async def load_project(self, project_id: str) -> Project:
        """Fetch a project from the remote API and make it current.

        Raises:
            ProjectNotFoundError: Remote has no such project
            RemoteLoadError: Request failed or returned an invalid project
        """
        snapshot = await self.client.get_project(project_id)
        try:
            project = Project.model_validate(snapshot)
        except ValidationError as e:
            raise RemoteLoadError(f"Remote project {project_id} is invalid: {e}") from e

        self.store.replace(project, "load_project")
        self._saved_revision = self.store.revision
        self._set_status(SaveStatus.SAVED if self._is_online else SaveStatus.OFFLINE)
        logger.info(f"Project {project_id} loaded successfully")
        return project

    def restore_local(self, project_id: str) -> Project | None:
        """Make the local snapshot current, if there is one.

        The restored project counts as unsynced until the next remote save.
        """
        if self.local_store is None:
            return None
        project = self.local_store.load_project(project_id)
        if project is None:
            return None
        self.store.replace(project, "restore_local")
        logger.info(f"Restored project {project_id} from local store")
        return project

    def clear_local(self, project_id: str | None = None) -> None:
        if self.local_store is None:
            return
        self.local_store.clear(project_id or self.store.project.id)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def prepare_unload(self) -> str | None:
        """Final local write before the session ends.

        Returns a warning when edits or queued snapshots have not reached
        the remote yet.
        """
        self.save_local()
        if self.queue or self._status != SaveStatus.SAVED:
            return UNSAVED_CHANGES_WARNING
        return None

    async def close(self) -> None:
        """Stop timers, write locally one last time and close the HTTP client."""
        if self._closed:
            return
        self._closed = True
        self.save_local()
        self._unsubscribe()

        tasks = [t for t in (self._autosave_task, self._sweep_task) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._autosave_task = self._sweep_task = None

        await self.client.close()
