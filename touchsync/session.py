"""
Labeling session: the single aggregate a UI or CLI drives.

Owns the tracks, the annotation store, the master clock and the edit
cursor. Lifecycle::

    register streams -> set sync points -> start -> annotate/playback
                        ^                               |
                        +----------- resync ------------+

Every user intent returns a ``Result``; nothing raises past this class.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence
from uuid import UUID

import structlog

from touchsync.alignment.clock import MasterClock
from touchsync.alignment.estimation import OffsetEstimator
from touchsync.alignment.sync_range import SyncRange, compute_sync_range
from touchsync.config import SessionConfig
from touchsync.errors import (
    ErrorKind,
    Result,
    SessionStateError,
    UnsyncedTrackError,
    ValidationError,
    returns_result,
)
from touchsync.interchange.reader import SessionReader
from touchsync.interchange.recovery import RestorePlan, restore_from_metadata, restore_legacy
from touchsync.interchange.writer import SessionWriter
from touchsync.media.detection import FrameRateDetection, FrameRateDetector
from touchsync.media.handles import MediaHandle, wait_for_metadata
from touchsync.models.annotation import Annotation, Surface
from touchsync.models.track import Track
from touchsync.store.annotations import AnnotationStore, coerce_surface

logger = structlog.get_logger(__name__)


@dataclass
class SyncProgress:
    """How many streams have a sync point."""

    synced: int = 0
    total: int = 0

    @property
    def complete(self) -> bool:
        return self.synced == self.total

    @property
    def message(self) -> str:
        if self.complete:
            return "All sync points set, ready to annotate"
        plural = "s" if self.total != 1 else ""
        return f"{self.synced} / {self.total} sync point{plural} set"


@dataclass
class ImportSummary:
    """What an import restored."""

    used_metadata: bool
    annotation_count: int
    sync_range: SyncRange
    offsets: dict[str, float] = field(default_factory=dict)
    frame_rates: dict[str, float] = field(default_factory=dict)


class Session:
    """
    Multi-stream touch labeling session.

    Example:
        ```python
        session = Session(detector=OpenCVFrameRateDetector())
        await session.register_track(open_video("left.mp4"), "left.mp4")
        await session.register_track(open_video("right.mp4"), "right.mp4")

        for track in session.tracks:
            session.set_sync_offset(track.id, 1.25)
        session.start()

        session.seek(3.0)
        session.log_touch("foot")
        text = session.export_session().value
        ```
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        detector: FrameRateDetector | None = None,
    ):
        self.config = config or SessionConfig()
        self.tracks: list[Track] = []
        self.store = AnnotationStore()
        self.clock = MasterClock(self.tracks, config=self.config)
        self.detection = FrameRateDetection(detector, self.config)
        self.writer = SessionWriter(self.config.metadata_marker)
        self.reader = SessionReader(self.config.metadata_marker)
        self.estimator = OffsetEstimator()

        self.started = False
        self.editing_index: Optional[int] = None
        self.selected_surface: Optional[Surface] = None
        self.logger = structlog.get_logger(__name__)

    # ----- Read-only views -----

    @property
    def sync_range(self) -> SyncRange:
        return self.clock.sync_range

    @property
    def master_time(self) -> float:
        return self.clock.master_time

    @property
    def master_frame_rate(self) -> float:
        return self.clock.master_frame_rate

    @property
    def current_frame(self) -> int:
        return self.clock.current_frame()

    @property
    def annotations(self) -> list[Annotation]:
        return self.store.annotations

    @property
    def current_annotation_index(self) -> Optional[int]:
        """Row matching the clock position, for highlighting."""
        return self.store.find_at(self.master_time, self.master_frame_rate)

    def get_track(self, track_id: UUID) -> Track:
        for track in self.tracks:
            if track.id == track_id:
                return track
        raise SessionStateError(ErrorKind.UNKNOWN_TRACK, f"No track with id {track_id}")

    def sync_progress(self) -> SyncProgress:
        return SyncProgress(
            synced=sum(1 for t in self.tracks if t.is_synced),
            total=len(self.tracks),
        )

    # ----- Stream setup -----

    @returns_result
    async def register_track(
        self,
        handle: MediaHandle,
        name: str,
        frame_rate: float | None = None,
    ) -> Track:
        """
        Add a stream once its metadata is available.

        The frame rate is detected unless given explicitly.
        """
        self._require_setup()
        if len(self.tracks) >= self.config.max_tracks:
            raise SessionStateError(
                ErrorKind.TRACK_LIMIT,
                f"At most {self.config.max_tracks} videos per session",
            )

        await wait_for_metadata(handle)
        if frame_rate is None:
            frame_rate = await self.detection.detect(handle, name=name)

        track = Track(
            display_name=name,
            duration=handle.duration,
            frame_rate=frame_rate,
            handle=handle,
            source_path=getattr(handle, "source_path", None),
        )
        self.tracks.append(track)
        self.logger.info(
            "Registered track",
            track=name,
            duration=track.duration,
            fps=frame_rate,
        )
        return track

    @returns_result
    async def register_tracks(self, streams: Sequence[tuple[str, MediaHandle]]) -> list[Track]:
        """
        Register several streams, one after another.

        Streams beyond the track limit are skipped with a warning.
        """
        registered: list[Track] = []
        warnings: list[str] = []
        for name, handle in streams:
            result = await self.register_track(handle, name)
            if result.kind is ErrorKind.TRACK_LIMIT:
                warnings.append(
                    f"Max {self.config.max_tracks} videos, added {len(registered)}"
                )
                break
            if not result:
                return result
            registered.append(result.value)
        return Result.ok(registered, warnings=warnings)

    @returns_result
    def remove_track(self, track_id: UUID) -> Track:
        self._require_setup()
        track = self.get_track(track_id)
        self.tracks.remove(track)
        self.logger.info("Removed track", track=track.display_name)
        return track

    @returns_result
    def set_sync_offset(self, track_id: UUID, time: float | None = None) -> float:
        """
        Mark ``time`` (default: the handle's current position) as this
        stream's sync moment.
        """
        self._require_setup()
        track = self.get_track(track_id)
        if time is None:
            time = track.handle.position
        track.sync_offset = float(time)
        self.logger.info("Set sync point", track=track.display_name, offset=track.sync_offset)
        return track.sync_offset

    @returns_result
    def override_frame_rate(self, track_id: UUID, frame_rate: int) -> int:
        """Replace a detected frame rate (whole fps, 1..max)."""
        if not 1 <= frame_rate <= self.config.max_override_frame_rate:
            raise ValidationError(
                ErrorKind.INVALID_FRAME_RATE,
                f"Frame rate must be between 1 and {self.config.max_override_frame_rate}",
            )
        track = self.get_track(track_id)
        track.frame_rate = int(frame_rate)
        return track.frame_rate

    @returns_result
    def start(self) -> SyncRange:
        """Derive the shared timeline and enter annotation mode."""
        if self.started:
            raise SessionStateError(ErrorKind.SESSION_ALREADY_STARTED, "Session already started")
        for track in self.tracks:
            if not track.is_synced:
                raise UnsyncedTrackError(track.display_name)

        warnings = self._apply_sync_range()
        self.started = True
        self.logger.info(
            "Session started",
            tracks=len(self.tracks),
            master_min=self.sync_range.master_min,
            master_max=self.sync_range.master_max,
        )
        return Result.ok(self.sync_range, warnings=warnings)

    @returns_result
    def resync(self) -> bool:
        """Return to sync setup; annotations are kept."""
        self._require_started()
        self.clock.pause()
        self.started = False
        return True

    # ----- Transport -----

    @returns_result
    def seek(self, master_time: float) -> float:
        self._require_started()
        self.clock.pause()
        return self.clock.seek(master_time)

    @returns_result
    def play(self) -> bool:
        self._require_started()
        return self.clock.play()

    @returns_result
    def pause(self) -> bool:
        self._require_started()
        return self.clock.pause()

    @returns_result
    def toggle_playback(self) -> bool:
        """Play if paused, pause if playing; returns whether now playing."""
        self._require_started()
        if self.clock.is_playing:
            self.clock.pause()
        else:
            self.clock.play()
        return self.clock.is_playing

    def tick(self) -> bool:
        """Host frame callback; True while playback continues."""
        if not self.started:
            return False
        return self.clock.tick()

    @returns_result
    def set_playback_rate(self, rate: float) -> float:
        try:
            self.clock.set_playback_rate(rate)
        except ValueError as e:
            raise ValidationError(ErrorKind.INVALID_PLAYBACK_RATE, str(e)) from e
        return rate

    @returns_result
    def step_frames(self, count: int = 1) -> float:
        self._require_started()
        return self.clock.step_frames(count)

    @returns_result
    def jump(self, seconds: float) -> float:
        self._require_started()
        return self.clock.jump(seconds)

    @returns_result
    def seek_start(self) -> float:
        self._require_started()
        return self.clock.seek_start()

    @returns_result
    def seek_end(self) -> float:
        self._require_started()
        return self.clock.seek_end()

    # ----- Annotation workflow -----

    @returns_result
    def select_surface(self, surface: Surface | str | None, comment: str = "") -> Optional[Annotation]:
        """
        Choose the surface for the next touch.

        With a touch open for editing the change is applied to it
        straight away; 'other' is only applied once a comment is given.
        Returns the edited annotation, if any.
        """
        surface = coerce_surface(surface)
        self.selected_surface = surface

        if self.editing_index is None:
            return None
        if surface is Surface.OTHER and not comment.strip():
            return None
        return self.store.assign_surface(self.editing_index, surface, comment)

    @returns_result
    def log_touch(self, surface: Surface | str | None = None, comment: str = "") -> int:
        """
        Log a touch at the current clock position.

        Uses the selected surface when none is given. The new touch
        becomes the edit target.
        """
        self._require_started()
        if surface is None:
            surface = self.selected_surface

        result = self.store.log_at(
            self.master_time,
            self.master_frame_rate,
            surface,
            comment,
        )
        if result:
            self.editing_index = result.value
        return result

    @returns_result
    def select_annotation(self, index: int) -> Annotation:
        """Jump to a logged touch and open it for editing."""
        self._require_started()
        if not 0 <= index < len(self.store):
            raise ValidationError(ErrorKind.INDEX_OUT_OF_RANGE, f"No touch at position {index}")

        annotation = self.store[index]
        self.clock.pause()
        self.clock.seek(annotation.time)
        self.editing_index = index
        self.selected_surface = annotation.surface
        return annotation

    @returns_result
    def assign_surface(
        self,
        index: int,
        surface: Surface | str | None,
        comment: str = "",
    ) -> Annotation:
        return self.store.assign_surface(index, surface, comment)

    @returns_result
    def delete_annotation(self, index: int) -> Annotation:
        result = self.store.delete(index)
        if result:
            self.editing_index = self.store.reconcile_cursor(self.editing_index, index)
        return result

    @returns_result
    def clear_annotations(self) -> int:
        result = self.store.clear()
        self.editing_index = None
        return result

    # ----- Interchange -----

    @returns_result
    def export_session(self) -> str:
        """Session as interchange text (metadata line, header, rows)."""
        return self.writer.write(self.tracks, self.store.annotations)

    @returns_result
    async def import_session(self, text: str) -> ImportSummary:
        """
        Restore annotations and sync state from exported text.

        Registered streams are matched against the file; on any failure
        the current session is left exactly as it was.
        """
        parsed = self.reader.parse(text)

        if parsed.has_metadata:
            plan = restore_from_metadata(parsed, self.tracks, self.config)
        else:
            plan = await restore_legacy(parsed, self.tracks, self.detection, self.estimator)

        store = AnnotationStore(plan.annotations)
        warnings = self._commit(plan, store)

        summary = ImportSummary(
            used_metadata=plan.used_metadata,
            annotation_count=len(store),
            sync_range=self.sync_range,
            offsets={t.display_name: t.offset for t in self.tracks},
            frame_rates={t.display_name: t.frame_rate for t in self.tracks},
        )
        self.logger.info(
            "Imported session",
            used_metadata=plan.used_metadata,
            tracks=len(self.tracks),
            annotations=len(store),
            warnings=len(warnings),
        )
        return Result.ok(summary, warnings=warnings)

    # ----- Internals -----

    def _commit(self, plan: RestorePlan, store: AnnotationStore) -> list[str]:
        self.clock.pause()
        for track in self.tracks:
            restore = plan.tracks.get(track.id)
            if restore is not None:
                track.sync_offset = restore.sync_offset
                track.frame_rate = restore.frame_rate

        self.store = store
        self.editing_index = None
        self.started = True
        return plan.warnings + self._apply_sync_range()

    def _apply_sync_range(self) -> list[str]:
        default = SyncRange(self.config.default_master_min, self.config.default_master_max)
        self.clock.sync_range = compute_sync_range(self.tracks, default=default)
        self.clock.seek(0.0)
        warning = self.sync_range.warning
        return [warning] if warning else []

    def _require_setup(self) -> None:
        if self.started:
            raise SessionStateError(
                ErrorKind.SESSION_ALREADY_STARTED,
                "Streams and sync points can only change before annotating (use resync)",
            )

    def _require_started(self) -> None:
        if not self.started:
            raise SessionStateError(ErrorKind.SESSION_NOT_STARTED, "Session not started")
