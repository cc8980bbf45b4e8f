"""Action layer: every editing operation on the timeline.

All mutations are synchronous and go through ``TimelineStore.commit``.
Operations that cannot apply (unknown id, split outside the clip, a trim
that would leave no media) return False/None and leave the store
untouched, including ``updated_at`` and the revision counter.
"""

import logging
from typing import Any, Iterable

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel

from timeline_engine.config import Settings, get_settings
from timeline_engine.schemas.timeline import (
    Asset,
    Clip,
    CompositionMetadata,
    CompositionSourceClip,
    Keyframe,
    Project,
    TrackConfig,
    generate_id,
)
from timeline_engine.services.state_store import TimelineStore
from timeline_engine.utils.timecode import snap_to_frame

logger = logging.getLogger(__name__)

# Identity and composition links change only through the composition actions
IMMUTABLE_FIELDS = frozenset(
    {
        "id",
        "is_composition",
        "composition_metadata",
        "is_source_clip",
        "hidden_by_composition",
        "parent_composition_id",
    }
)


def create_empty_project(settings: Settings | None = None) -> Project:
    """A blank project using the configured timeline defaults."""
    s = settings or get_settings()
    return Project(
        duration=s.default_duration_s,
        frame_rate=s.default_frame_rate,
        track_config=TrackConfig(
            video_tracks=s.default_video_tracks,
            audio_tracks=s.default_audio_tracks,
        ),
    )


def _normalize_updates(model_cls: type[BaseModel], updates: dict[str, Any]) -> dict[str, Any]:
    """Map snake_case or camelCase keys onto field names, dropping unknown keys."""
    names: dict[str, str] = {}
    for name, info in model_cls.model_fields.items():
        names[name] = name
        names[info.alias or to_camel(name)] = name

    clean: dict[str, Any] = {}
    for key, value in updates.items():
        field_name = names.get(key)
        if field_name is None:
            logger.warning(f"Ignoring unknown {model_cls.__name__} field in update: {key}")
            continue
        if field_name in IMMUTABLE_FIELDS:
            logger.warning(f"Ignoring attempt to change {model_cls.__name__}.{field_name}")
            continue
        clean[field_name] = value
    return clean


def _merge(model: BaseModel, updates: dict[str, Any]) -> BaseModel | None:
    """Shallow-merge updates into a model and re-validate the result."""
    merged = model.model_dump()
    merged.update(updates)
    try:
        return type(model).model_validate(merged)
    except ValidationError as e:
        logger.warning(f"Rejected update for {type(model).__name__} {getattr(model, 'id', '?')}: {e}")
        return None


def _restore_sources(assets: Iterable[Asset], composition_id: str) -> list[Asset]:
    restored = []
    for a in assets:
        if a.hidden_by_composition == composition_id:
            a = a.model_copy(
                update={
                    "hidden_by_composition": None,
                    "is_source_clip": False,
                    "parent_composition_id": None,
                }
            )
        restored.append(a)
    return restored


class TimelineActions:
    """Editing operations over a TimelineStore."""

    def __init__(self, store: TimelineStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def project(self) -> Project:
        return self.store.project

    def _clamp_track(self, track: int, track_type: str, config: TrackConfig | None = None) -> int:
        config = config or self.project.track_config
        return max(0, min(config.max_track(track_type), track))

    def _commit_assets(self, assets: list[Asset], reason: str) -> Project:
        return self.store.commit(self.project.model_copy(update={"assets": assets}), reason)

    def _commit_clips(self, clips: list[Clip], reason: str) -> Project:
        return self.store.commit(self.project.model_copy(update={"clips": clips}), reason)

    def _replace_asset(self, asset: Asset, reason: str) -> None:
        assets = [asset if a.id == asset.id else a for a in self.project.assets]
        self._commit_assets(assets, reason)

    def _replace_clip(self, clip: Clip, reason: str) -> None:
        clips = [clip if c.id == clip.id else c for c in self.project.clips]
        self._commit_clips(clips, reason)

    def _prepare_asset(self, asset: Asset | dict[str, Any], index: int | None = None) -> Asset:
        if isinstance(asset, dict):
            asset = Asset.model_validate(asset)
        return asset.model_copy(
            update={
                "id": generate_id("asset", index),
                "track": self._clamp_track(asset.track, asset.track_type),
            },
            deep=True,
        )

    def _prepare_clip(self, clip: Clip | dict[str, Any], index: int | None = None) -> Clip:
        if isinstance(clip, dict):
            clip = Clip.model_validate(clip)
        return clip.model_copy(update={"id": generate_id("clip", index)}, deep=True)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def add_asset(self, asset: Asset | dict[str, Any]) -> str:
        """Append an asset under a fresh id. Returns the new id."""
        new_asset = self._prepare_asset(asset)
        self._commit_assets([*self.project.assets, new_asset], "add_asset")
        logger.info(f"Added {new_asset.type} asset {new_asset.id} on track {new_asset.track}")
        return new_asset.id

    def add_assets(self, assets: Iterable[Asset | dict[str, Any]]) -> list[str]:
        new_assets = [self._prepare_asset(a, i) for i, a in enumerate(assets)]
        if not new_assets:
            return []
        self._commit_assets([*self.project.assets, *new_assets], "add_assets")
        logger.info(f"Added {len(new_assets)} assets")
        return [a.id for a in new_assets]

    def update_asset(self, asset_id: str, updates: dict[str, Any]) -> bool:
        """Shallow-merge ``updates`` into an asset.

        Keys may be snake_case or camelCase. Unknown keys are dropped.
        Returns False and changes nothing when the asset is missing or the
        merged asset fails validation.
        """
        asset = self.project.get_asset(asset_id)
        if asset is None:
            logger.warning(f"update_asset: asset not found: {asset_id}")
            return False

        clean = _normalize_updates(Asset, updates)
        if not clean:
            return False

        updated = _merge(asset, clean)
        if updated is None:
            return False
        self._replace_asset(updated, "update_asset")
        return True

    def _remove_asset(self, assets: list[Asset], asset_id: str) -> list[Asset]:
        removed = next((a for a in assets if a.id == asset_id), None)
        if removed is None:
            return assets

        remaining = [a for a in assets if a.id != asset_id]
        if removed.is_composition:
            remaining = _restore_sources(remaining, removed.id)

        # Deleting a composite frees no track time
        if self.store.ripple_mode and not removed.is_composition:
            shifted = []
            for a in remaining:
                if (
                    a.track == removed.track
                    and a.track_type == removed.track_type
                    and a.start_time > removed.start_time
                ):
                    a = a.model_copy(update={"start_time": max(0.0, a.start_time - removed.duration)})
                shifted.append(a)
            remaining = shifted
        return remaining

    def delete_asset(self, asset_id: str) -> bool:
        """Remove an asset.

        With ripple mode on, later assets on the same track and track kind
        shift left by the removed duration (never below 0). Deleting a
        composition restores the source clips it was hiding.
        """
        if self.project.get_asset(asset_id) is None:
            logger.warning(f"delete_asset: asset not found: {asset_id}")
            return False

        assets = self._remove_asset(list(self.project.assets), asset_id)
        self._commit_assets(assets, "delete_asset")
        self.store.selection.discard(asset_id)
        logger.info(f"Deleted asset {asset_id} (ripple={self.store.ripple_mode})")
        return True

    def delete_assets(self, asset_ids: Iterable[str]) -> int:
        """Remove several assets in one commit. Returns how many were removed."""
        assets = list(self.project.assets)
        removed = 0
        for asset_id in asset_ids:
            before = len(assets)
            assets = self._remove_asset(assets, asset_id)
            if len(assets) < before:
                removed += 1
                self.store.selection.discard(asset_id)
        if removed:
            self._commit_assets(assets, "delete_assets")
        return removed

    def duplicate_asset(self, asset_id: str) -> str | None:
        """Clone an asset right after the original, separated by a small gap."""
        asset = self.project.get_asset(asset_id)
        if asset is None:
            return None
        if asset.is_composition or asset.hidden_by_composition:
            logger.warning(f"duplicate_asset: {asset_id} belongs to a composition, not duplicated")
            return None

        clone = asset.model_copy(
            update={
                "id": generate_id("asset"),
                "start_time": asset.start_time + asset.duration + self.settings.duplicate_gap_s,
            },
            deep=True,
        )
        self._commit_assets([*self.project.assets, clone], "duplicate_asset")
        return clone.id

    def move_asset(self, asset_id: str, track: int, start_time: float) -> bool:
        """Move an asset, snapping to the frame grid and clamping its track."""
        asset = self.project.get_asset(asset_id)
        if asset is None:
            return False

        snapped = snap_to_frame(start_time, self.project.frame_rate)
        moved = asset.model_copy(
            update={
                "track": self._clamp_track(track, asset.track_type),
                "start_time": max(0.0, snapped),
            }
        )
        self._replace_asset(moved, "move_asset")
        return True

    def move_asset_to_frame(self, asset_id: str, frame_number: int) -> bool:
        asset = self.project.get_asset(asset_id)
        if asset is None:
            return False

        start_time = max(0.0, frame_number / self.project.frame_rate)
        self._replace_asset(asset.model_copy(update={"start_time": start_time}), "move_asset_to_frame")
        return True

    def trim_asset(self, asset_id: str, in_delta: float = 0.0, out_delta: float = 0.0) -> bool:
        """Trim the head and/or tail of an asset.

        Positive deltas remove media, negative deltas restore it. The start
        time stays fixed and the duration shrinks or grows by the total.
        A trim that would leave no duration, push a trim negative, or eat
        more than the known source length is rejected.
        """
        asset = self.project.get_asset(asset_id)
        if asset is None:
            return False

        trim_start = asset.trim_start + in_delta
        trim_end = asset.trim_end + out_delta
        duration = asset.duration - in_delta - out_delta

        if duration <= 0 or trim_start < 0 or trim_end < 0:
            return False
        if asset.source_duration is not None and trim_start + trim_end > asset.source_duration:
            return False

        trimmed = asset.model_copy(
            update={"trim_start": trim_start, "trim_end": trim_end, "duration": duration}
        )
        self._replace_asset(trimmed, "trim_asset")
        return True

    def split_asset(self, asset_id: str, at_time: float | None = None) -> tuple[str, str] | None:
        """Cut an asset in two at the playhead (or ``at_time``).

        The split point must fall strictly inside the asset. The halves keep
        the original's position in the asset list; keyframes are partitioned
        and the second half's keyframe times rebased.
        """
        asset = self.project.get_asset(asset_id)
        if asset is None:
            return None

        playhead = self.store.playhead_position if at_time is None else at_time
        if playhead <= asset.start_time or playhead >= asset.end_time:
            return None

        split_point = playhead - asset.start_time
        first = asset.model_copy(
            update={
                "id": generate_id("asset"),
                "duration": split_point,
                "trim_end": asset.trim_end + (asset.duration - split_point),
                "keyframes": [kf for kf in asset.keyframes if kf.time < split_point],
                "fade_out": None,
                "transition": None,
            },
            deep=True,
        )
        second = asset.model_copy(
            update={
                "id": generate_id("asset"),
                "start_time": playhead,
                "duration": asset.duration - split_point,
                "trim_start": asset.trim_start + split_point,
                "keyframes": [
                    kf.model_copy(update={"time": kf.time - split_point})
                    for kf in asset.keyframes
                    if kf.time >= split_point
                ],
                "fade_in": None,
            },
            deep=True,
        )

        assets: list[Asset] = []
        for a in self.project.assets:
            if a.id == asset_id:
                assets.extend([first, second])
            else:
                assets.append(a)
        self._commit_assets(assets, "split_asset")
        self.store.selection.discard(asset_id)
        logger.info(f"Split asset {asset_id} at {playhead:.3f}s into {first.id}, {second.id}")
        return first.id, second.id

    # ------------------------------------------------------------------
    # Clipboard
    # ------------------------------------------------------------------

    def copy_assets(self, asset_ids: Iterable[str]) -> int:
        """Snapshot assets (in timeline order) into the clipboard.

        Composites and the sources they hide are skipped.
        """
        wanted = set(asset_ids)
        self.store.clipboard = [
            a.model_copy(deep=True)
            for a in self.project.assets
            if a.id in wanted and not (a.is_composition or a.hidden_by_composition)
        ]
        return len(self.store.clipboard)

    def paste_assets(self, track: int | None = None, start_time: float | None = None) -> list[str]:
        """Paste the clipboard with fresh ids; the pasted assets become the selection.

        Offsets are measured from the first clipboard entry: it lands at
        ``start_time`` (default: playhead) on ``track`` (default: its own
        track) and the rest keep their relative positions.
        """
        clipboard = self.store.clipboard
        if not clipboard:
            return []

        first = clipboard[0]
        paste_time = self.store.playhead_position if start_time is None else start_time
        paste_track = first.track if track is None else track
        time_offset = paste_time - first.start_time
        track_offset = paste_track - first.track

        pasted = [
            a.model_copy(
                update={
                    "id": generate_id("asset", i),
                    "start_time": max(0.0, a.start_time + time_offset),
                    "track": self._clamp_track(a.track + track_offset, a.track_type),
                },
                deep=True,
            )
            for i, a in enumerate(clipboard)
        ]
        self._commit_assets([*self.project.assets, *pasted], "paste_assets")

        new_ids = [a.id for a in pasted]
        self.store.selection = set(new_ids)
        return new_ids

    # ------------------------------------------------------------------
    # Keyframes
    # ------------------------------------------------------------------

    def add_keyframe(self, asset_id: str, keyframe: Keyframe | dict[str, Any]) -> bool:
        asset = self.project.get_asset(asset_id)
        if asset is None:
            return False
        if isinstance(keyframe, dict):
            keyframe = Keyframe.model_validate(keyframe)

        keyframes = sorted([*asset.keyframes, keyframe], key=lambda kf: kf.time)
        self._replace_asset(asset.model_copy(update={"keyframes": keyframes}), "add_keyframe")
        return True

    def update_keyframe(self, asset_id: str, index: int, updates: dict[str, Any]) -> bool:
        asset = self.project.get_asset(asset_id)
        if asset is None or not 0 <= index < len(asset.keyframes):
            return False

        clean = _normalize_updates(Keyframe, updates)
        updated = _merge(asset.keyframes[index], clean)
        if updated is None:
            return False

        keyframes = list(asset.keyframes)
        keyframes[index] = updated
        keyframes.sort(key=lambda kf: kf.time)
        self._replace_asset(asset.model_copy(update={"keyframes": keyframes}), "update_keyframe")
        return True

    def remove_keyframe(self, asset_id: str, index: int) -> bool:
        asset = self.project.get_asset(asset_id)
        if asset is None or not 0 <= index < len(asset.keyframes):
            return False

        keyframes = [kf for i, kf in enumerate(asset.keyframes) if i != index]
        self._replace_asset(asset.model_copy(update={"keyframes": keyframes}), "remove_keyframe")
        return True

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    def set_audio_volume(self, asset_id: str, volume: float, at_time: float | None = None) -> bool:
        """Set base volume (clamped to 0..2), or key it at ``at_time``."""
        volume = max(0.0, min(2.0, volume))
        if at_time is not None:
            return self.add_keyframe(asset_id, Keyframe(time=at_time, volume=volume))
        return self.update_asset(asset_id, {"volume": volume})

    def mute_asset(self, asset_id: str, muted: bool) -> bool:
        return self.update_asset(asset_id, {"muted": muted})

    def set_audio_fade(
        self, asset_id: str, fade_in: float | None = None, fade_out: float | None = None
    ) -> bool:
        return self.update_asset(asset_id, {"fade_in": fade_in, "fade_out": fade_out})

    # ------------------------------------------------------------------
    # Compositions
    # ------------------------------------------------------------------

    def create_composition(
        self,
        source_ids: list[str],
        composition_type: str = "static-layout",
        *,
        name: str | None = None,
        url: str = "",
        credits_used: float = 0,
        **options: Any,
    ) -> str | None:
        """Replace source assets with one composite asset.

        Sources stay in the project, hidden and tagged with the
        composition id, so the composition can be dissolved later.
        ``options`` carries layout_id, animation_id, pacing_id,
        audio_mix_type or audio_effects.
        """
        wanted = set(source_ids)
        sources = [a for a in self.project.assets if a.id in wanted]
        if not sources or len(sources) != len(wanted):
            logger.warning(f"create_composition: unknown source ids in {source_ids}")
            return None
        if any(a.hidden_by_composition for a in sources):
            logger.warning("create_composition: a source is already part of a composition")
            return None

        composition_id = generate_id("asset")
        start = min(a.start_time for a in sources)
        end = max(a.end_time for a in sources)
        first = sources[0]

        try:
            metadata = CompositionMetadata(
                composition_id=composition_id,
                composition_type=composition_type,
                credits_used=credits_used,
                source_clips=[
                    CompositionSourceClip(
                        id=a.id,
                        url=a.url,
                        name=a.name,
                        start_time=a.start_time,
                        duration=a.duration,
                        track_index=a.track,
                        track_type=a.track_type,
                    )
                    for a in sources
                ],
                **options,
            )
        except ValidationError as e:
            logger.warning(f"create_composition: invalid composition options: {e}")
            return None

        composite = Asset(
            id=composition_id,
            type="audio" if composition_type in ("audio-mix", "music-mix") else "video",
            url=url,
            name=name or f"Composition ({len(sources)} clips)",
            track=first.track,
            track_type=first.track_type,
            start_time=start,
            duration=end - start,
            is_composition=True,
            composition_metadata=metadata,
        )

        assets = []
        for a in self.project.assets:
            if a.id in wanted:
                a = a.model_copy(
                    update={
                        "hidden_by_composition": composition_id,
                        "is_source_clip": True,
                        "parent_composition_id": composition_id,
                    }
                )
            assets.append(a)
        assets.append(composite)

        self._commit_assets(assets, "create_composition")
        self.store.selection -= wanted
        logger.info(f"Created {composition_type} composition {composition_id} from {len(sources)} assets")
        return composition_id

    def dissolve_composition(self, composition_id: str) -> bool:
        """Remove a composition and bring its sources back (no ripple)."""
        composite = self.project.get_asset(composition_id)
        if composite is None or not composite.is_composition:
            return False

        remaining = [a for a in self.project.assets if a.id != composition_id]
        self._commit_assets(_restore_sources(remaining, composition_id), "dissolve_composition")
        self.store.selection.discard(composition_id)
        return True

    # ------------------------------------------------------------------
    # Legacy clips
    # ------------------------------------------------------------------

    def add_clip(self, clip: Clip | dict[str, Any]) -> str:
        new_clip = self._prepare_clip(clip)
        self._commit_clips([*self.project.clips, new_clip], "add_clip")
        return new_clip.id

    def add_clips(self, clips: Iterable[Clip | dict[str, Any]]) -> list[str]:
        new_clips = [self._prepare_clip(c, i) for i, c in enumerate(clips)]
        if not new_clips:
            return []
        self._commit_clips([*self.project.clips, *new_clips], "add_clips")
        return [c.id for c in new_clips]

    def update_clip(self, clip_id: str, updates: dict[str, Any]) -> bool:
        clip = self.project.get_clip(clip_id)
        if clip is None:
            return False

        clean = _normalize_updates(Clip, updates)
        if not clean:
            return False
        updated = _merge(clip, clean)
        if updated is None:
            return False
        self._replace_clip(updated, "update_clip")
        return True

    def remove_clip(self, clip_id: str) -> bool:
        if self.project.get_clip(clip_id) is None:
            return False
        self._commit_clips([c for c in self.project.clips if c.id != clip_id], "remove_clip")
        self.store.selection.discard(clip_id)
        return True

    def remove_clips(self, clip_ids: Iterable[str]) -> int:
        wanted = set(clip_ids)
        remaining = [c for c in self.project.clips if c.id not in wanted]
        removed = len(self.project.clips) - len(remaining)
        if removed:
            self._commit_clips(remaining, "remove_clips")
            self.store.selection -= wanted
        return removed

    def move_clip(self, clip_id: str, track: int, start_time: float) -> bool:
        """Move a legacy clip; legacy clips live on a fixed set of tracks."""
        clip = self.project.get_clip(clip_id)
        if clip is None:
            return False

        max_track = self.settings.legacy_clip_tracks - 1
        snapped = snap_to_frame(start_time, self.project.frame_rate)
        moved = clip.model_copy(
            update={"track": max(0, min(max_track, track)), "start_time": max(0.0, snapped)}
        )
        self._replace_clip(moved, "move_clip")
        return True

    def duplicate_clip(self, clip_id: str) -> str | None:
        clip = self.project.get_clip(clip_id)
        if clip is None:
            return None

        clone = clip.model_copy(
            update={
                "id": generate_id("clip"),
                "start_time": clip.start_time + clip.duration + self.settings.duplicate_gap_s,
            },
            deep=True,
        )
        self._commit_clips([*self.project.clips, clone], "duplicate_clip")
        return clone.id

    def split_clip_at_playhead(self, clip_id: str) -> tuple[str, str] | None:
        clip = self.project.get_clip(clip_id)
        if clip is None:
            return None

        playhead = self.store.playhead_position
        if playhead <= clip.start_time or playhead >= clip.end_time:
            return None

        split_point = playhead - clip.start_time
        first = clip.model_copy(
            update={
                "id": generate_id("clip"),
                "duration": split_point,
                "trim_end": clip.trim_end + (clip.duration - split_point),
            }
        )
        second = clip.model_copy(
            update={
                "id": generate_id("clip"),
                "start_time": playhead,
                "duration": clip.duration - split_point,
                "trim_start": clip.trim_start + split_point,
            }
        )

        clips: list[Clip] = []
        for c in self.project.clips:
            if c.id == clip_id:
                clips.extend([first, second])
            else:
                clips.append(c)
        self._commit_clips(clips, "split_clip")
        self.store.selection.discard(clip_id)
        return first.id, second.id

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, item_id: str, add_to_selection: bool = False) -> None:
        if add_to_selection:
            self.store.selection.add(item_id)
        else:
            self.store.selection = {item_id}

    def deselect(self, item_id: str) -> None:
        self.store.selection.discard(item_id)

    def toggle_selection(self, item_id: str) -> None:
        if item_id in self.store.selection:
            self.store.selection.discard(item_id)
        else:
            self.store.selection.add(item_id)

    def select_all(self) -> None:
        """Select every visible asset and every legacy clip."""
        self.store.selection = {a.id for a in self.project.assets if not a.hidden_by_composition}
        self.store.selection.update(c.id for c in self.project.clips)

    def clear_selection(self) -> None:
        self.store.selection = set()

    # ------------------------------------------------------------------
    # Project
    # ------------------------------------------------------------------

    def set_ripple_mode(self, enabled: bool) -> None:
        self.store.ripple_mode = enabled

    def import_from_shot_list(self, shots: Iterable[dict[str, Any]]) -> list[str]:
        """Create one legacy clip per shot, all on track 0."""

        def pick(shot: dict[str, Any], key: str, default: Any = None) -> Any:
            if key in shot:
                return shot[key]
            return shot.get(to_camel(key), default)

        clips = [
            Clip(
                shot_id=pick(shot, "id"),
                video_url=pick(shot, "generated_video_url") or "",
                thumbnail_url=pick(shot, "thumbnail_url"),
                name=f"Shot {pick(shot, 'shot_number')}: {pick(shot, 'subject')}",
                track=0,
                start_time=pick(shot, "start_time", 0),
                duration=pick(shot, "duration", 0),
                metadata={
                    "shotType": pick(shot, "shot_type"),
                    "cameraMovement": pick(shot, "camera_movement"),
                    "description": pick(shot, "description"),
                    "visualPrompt": pick(shot, "visual_prompt"),
                },
            )
            for shot in shots
        ]
        return self.add_clips(clips)

    def clear_project(self) -> Project:
        """Reset to an empty project with a fresh id."""
        project = self.store.replace(create_empty_project(self.settings), "clear_project")
        logger.info(f"Cleared timeline, new project {project.id}")
        return project
