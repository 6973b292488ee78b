"""Track model: one registered video stream."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID, uuid4

from touchsync.errors import ErrorKind, UnsyncedTrackError, ValidationError
from touchsync.models.frames import clamp, frame_at

_EXTENSION = re.compile(r"\.[^.]+$")


def strip_extension(name: str) -> str:
    """Drop a trailing file extension (``cam_a.mp4`` -> ``cam_a``)."""
    return _EXTENSION.sub("", name)


@dataclass
class Track:
    """
    A registered stream with its own local clock.

    ``sync_offset`` is the stream's local time at the shared
    timeline's zero point. It stays ``None`` until a sync point is
    set or an import restores it.
    """

    display_name: str
    duration: float
    frame_rate: float = 25.0
    sync_offset: Optional[float] = None

    # Media source driving this track (a MediaHandle)
    handle: Any = field(default=None, repr=False, compare=False)

    # Where the stream came from, if it is a file
    source_path: Optional[str] = None

    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if not self.duration or self.duration <= 0:
            raise ValidationError(
                ErrorKind.INVALID_TRACK,
                f"Track '{self.display_name}' has no usable duration",
            )
        if self.frame_rate <= 0:
            raise ValidationError(
                ErrorKind.INVALID_FRAME_RATE,
                f"Track '{self.display_name}' frame rate must be positive",
            )

    @property
    def is_synced(self) -> bool:
        return self.sync_offset is not None

    @property
    def base_name(self) -> str:
        """Display name without its file extension."""
        return strip_extension(self.display_name)

    @property
    def offset(self) -> float:
        """Resolved sync offset; raises if no sync point was set."""
        if self.sync_offset is None:
            raise UnsyncedTrackError(self.display_name)
        return self.sync_offset

    def local_time(self, master_time: float) -> float:
        """Position in this stream for a master time, clamped to the media."""
        return clamp(master_time + self.offset, 0.0, self.duration)

    def local_frame(self, master_time: float) -> int:
        """
        Frame number in this stream's own clock for a master time.

        Not clamped: exported per-track frames keep the raw offset
        relationship so offsets can be re-derived from them.
        """
        return frame_at(master_time + self.offset, self.frame_rate)
