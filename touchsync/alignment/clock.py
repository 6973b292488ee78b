"""
Master clock: multi-stream playback against the shared timeline.

Track 0 is the timing reference. While playing, its reported position
defines master time and every other stream is pulled back to its
offset-aligned target when it drifts past a tolerance.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

import structlog

from touchsync.alignment.sync_range import SyncRange
from touchsync.config import SessionConfig
from touchsync.models.frames import frame_at
from touchsync.models.track import Track


class ClockState(str, Enum):
    """Playback states."""

    IDLE = "idle"
    SEEKING = "seeking"
    PLAYING = "playing"


class MasterClock:
    """
    Drives all track handles from one master time.

    ``tick()`` is a polled step: the host calls it once per animation
    frame (or timer tick) while playing. Ticks are not re-entrant and
    a tick that hits the end of the range stops the clock; later ticks
    are ignored until ``play()``.
    """

    def __init__(
        self,
        tracks: Sequence[Track],
        sync_range: SyncRange | None = None,
        config: SessionConfig | None = None,
    ):
        self.config = config or SessionConfig()
        self.tracks = tracks
        self.sync_range = sync_range or SyncRange(
            self.config.default_master_min,
            self.config.default_master_max,
        )
        self.master_time = 0.0
        self.playback_rate = self.config.playback_rate
        self.state = ClockState.IDLE
        self.corrections = 0
        self.logger = structlog.get_logger(__name__)

    @property
    def is_playing(self) -> bool:
        return self.state is ClockState.PLAYING

    @property
    def reference(self) -> Track | None:
        return self.tracks[0] if self.tracks else None

    @property
    def master_frame_rate(self) -> float:
        """Frame rate of the reference track drives the frame counter."""
        if self.reference is None:
            return self.config.default_frame_rate
        return self.reference.frame_rate

    def current_frame(self, frame_rate: float | None = None) -> int:
        return frame_at(self.master_time, frame_rate or self.master_frame_rate)

    # ----- Transport -----

    def seek(self, master_time: float) -> float:
        """
        Move every stream to ``master_time`` (clamped to the range).

        A handle is only repositioned when it is more than the seek
        deadband away from its target. Seeking stops playback.
        """
        if self.is_playing:
            self._stop_handles()

        self.state = ClockState.SEEKING
        self.master_time = self.sync_range.clamp(master_time)

        for track in self.tracks:
            self._move_handle(track, self.config.seek_deadband_seconds)

        self.state = ClockState.IDLE
        return self.master_time

    def play(self) -> bool:
        """
        Start all streams. Returns False if already playing.

        Handles are aligned to the current master time first, but only
        those more than the seek deadband off target are repositioned.
        """
        if self.is_playing:
            return False

        if self.master_time >= self.sync_range.master_max:
            self.seek(self.sync_range.master_min)

        for track in self.tracks:
            self._move_handle(track, self.config.seek_deadband_seconds)
            track.handle.playback_rate = self.playback_rate
            track.handle.play()

        self.state = ClockState.PLAYING
        self.logger.debug(
            "Playback started",
            master_time=self.master_time,
            rate=self.playback_rate,
        )
        return True

    def pause(self) -> bool:
        """Stop all streams. Returns False if not playing."""
        if not self.is_playing:
            return False

        self._stop_handles()
        self.state = ClockState.IDLE
        self.logger.debug("Playback paused", master_time=self.master_time)
        return True

    def tick(self) -> bool:
        """
        Advance master time from the reference stream.

        Returns True while playback continues, False once stopped.
        """
        if not self.is_playing:
            return False

        reference = self.reference
        if reference is None:
            self.pause()
            return False

        handle = reference.handle
        self.master_time = handle.position - reference.offset

        if (
            self.master_time >= self.sync_range.master_max
            or handle.paused
            or handle.ended
        ):
            self.pause()
            self.seek(min(self.master_time, self.sync_range.master_max))
            return False

        for track in self.tracks[1:]:
            if self._move_handle(track, self.config.drift_threshold_seconds):
                self.corrections += 1
                self.logger.debug(
                    "Corrected drift",
                    track=track.display_name,
                    master_time=self.master_time,
                )

        return True

    def set_playback_rate(self, rate: float) -> None:
        """Store the rate multiplier; applied live only while playing."""
        if rate <= 0:
            raise ValueError("Playback rate must be positive")
        self.playback_rate = rate
        if self.is_playing:
            for track in self.tracks:
                track.handle.playback_rate = rate

    # ----- Stepping -----

    def step_frames(self, count: int) -> float:
        """Pause and move by ``count`` reference frames."""
        self.pause()
        return self.seek(self.master_time + count / self.master_frame_rate)

    def jump(self, seconds: float) -> float:
        """Pause and move by a relative number of seconds."""
        self.pause()
        return self.seek(self.master_time + seconds)

    def seek_start(self) -> float:
        self.pause()
        return self.seek(self.sync_range.master_min)

    def seek_end(self) -> float:
        self.pause()
        return self.seek(self.sync_range.master_max)

    # ----- Internals -----

    def _move_handle(self, track: Track, tolerance: float) -> bool:
        """Reposition a handle if it is more than ``tolerance`` off target."""
        target = track.local_time(self.master_time)
        if abs(track.handle.position - target) > tolerance:
            track.handle.position = target
            return True
        return False

    def _stop_handles(self) -> None:
        for track in self.tracks:
            track.handle.pause()
