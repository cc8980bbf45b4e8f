"""Playback controller: play/pause/seek over the store's playhead.

While playing, an asyncio task advances the playhead one frame every
1/frame_rate seconds. Reaching the end of the timeline parks the
playhead at the total duration and stops the ticker.
"""

import asyncio
import logging
from typing import Callable

from timeline_engine.config import Settings, get_settings
from timeline_engine.services.effects_resolver import ActiveAssets, get_active_assets_at_time
from timeline_engine.services.state_store import TimelineStore

logger = logging.getLogger(__name__)


class PlaybackController:
    def __init__(
        self,
        store: TimelineStore,
        settings: Settings | None = None,
        on_position: Callable[[float], None] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.on_position = on_position
        self._is_playing = False
        self._task: asyncio.Task | None = None

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def playhead_position(self) -> float:
        return self.store.playhead_position

    @property
    def frame_duration(self) -> float:
        return 1 / self.store.project.frame_rate

    def _set_position(self, position: float) -> None:
        self.store.playhead_position = position
        if self.on_position:
            self.on_position(position)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def play(self) -> None:
        """Start the ticker. Must be called from a running event loop."""
        if self._is_playing:
            return
        if self.playhead_position >= self.store.total_duration:
            self._set_position(0.0)

        self._is_playing = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Playback started at {self.playhead_position:.3f}s")

    def pause(self) -> None:
        self._is_playing = False
        self._cancel_ticker()

    def stop(self) -> None:
        self.pause()
        self.seek(0.0)

    def toggle_play(self) -> None:
        if self._is_playing:
            self.pause()
        else:
            self.play()

    def tick(self) -> bool:
        """Advance one frame. Returns False once the end has been reached."""
        total = self.store.total_duration
        next_position = self.playhead_position + self.frame_duration
        if next_position >= total:
            self._set_position(total)
            self._is_playing = False
            self._cancel_ticker()
            logger.debug("Playback reached end of timeline")
            return False
        self._set_position(next_position)
        return True

    async def _run(self) -> None:
        while self._is_playing:
            await asyncio.sleep(self.frame_duration)
            if not self._is_playing or not self.tick():
                break

    def _cancel_ticker(self) -> None:
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def close(self) -> None:
        """Stop playback and wait for the ticker to finish."""
        task = self._task
        self.pause()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Seeking
    # ------------------------------------------------------------------

    def seek(self, time: float) -> float:
        position = max(0.0, min(self.store.total_duration, time))
        self._set_position(position)
        return position

    def skip_forward(self, seconds: float | None = None) -> float:
        step = self.settings.skip_seconds if seconds is None else seconds
        return self.seek(self.playhead_position + step)

    def skip_backward(self, seconds: float | None = None) -> float:
        step = self.settings.skip_seconds if seconds is None else seconds
        return self.seek(self.playhead_position - step)

    def jump_to_start(self) -> float:
        return self.seek(0.0)

    def jump_to_end(self) -> float:
        return self.seek(self.store.total_duration)

    def active_at(self) -> ActiveAssets:
        """Assets and transition pairs on screen at the playhead."""
        return get_active_assets_at_time(self.store.project.assets, self.playhead_position)
