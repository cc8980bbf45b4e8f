"""In-memory state store: the single authoritative project plus session state.

The project aggregate is treated as immutable. Every change goes through
``commit()``, which swaps in a new Project, bumps the revision counter,
touches ``updated_at`` and notifies subscribers synchronously.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from timeline_engine.schemas.timeline import Asset, Project
from timeline_engine.utils.timecode import MIN_TIMELINE_DURATION, compute_total_duration

logger = logging.getLogger(__name__)


@dataclass
class StoreChange:
    """Notification sent to subscribers after each commit."""

    revision: int
    reason: str
    project: Project


Subscriber = Callable[[StoreChange], None]


class TimelineStore:
    """Holds the current Project and per-session editing state."""

    def __init__(
        self, project: Project | None = None, *, min_duration: float = MIN_TIMELINE_DURATION
    ) -> None:
        self._project = project or Project()
        self.min_duration = min_duration
        self._revision = 0
        self._subscribers: list[Subscriber] = []

        # Session state, never persisted
        self.selection: set[str] = set()
        self.clipboard: list[Asset] = []
        self.ripple_mode: bool = False
        self.playhead_position: float = 0.0

    @property
    def project(self) -> Project:
        return self._project

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def total_duration(self) -> float:
        p = self._project
        return compute_total_duration(p.duration, p.assets, p.clips, floor=self.min_duration)

    def commit(self, project: Project, reason: str, *, touch: bool = True) -> Project:
        """Replace the current project and notify subscribers.

        Args:
            project: New aggregate (never mutated afterwards)
            reason: Short action name, e.g. "delete_asset"
            touch: Set ``updated_at`` to now

        Returns:
            The committed project
        """
        if touch:
            project = project.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        self._project = project
        self._revision += 1
        logger.debug(f"Committed revision {self._revision} ({reason}) for project {project.id}")

        change = StoreChange(revision=self._revision, reason=reason, project=project)
        for subscriber in list(self._subscribers):
            subscriber(change)
        return project

    def replace(self, project: Project, reason: str = "replace") -> Project:
        """Swap in a loaded/restored project and reset session state."""
        self.selection = set()
        self.clipboard = []
        self.playhead_position = 0.0
        return self.commit(project, reason, touch=False)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
