"""
Shared timeline bounds.

Master time 0 is the sync moment. Stream ``i`` shows valid media for
master time ``T`` when ``0 <= T + offset_i <= duration_i``, so the
range every stream can cover is::

    master_min = max(-offset_i)
    master_max = min(duration_i - offset_i)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import structlog

from touchsync.models.frames import clamp
from touchsync.models.track import Track

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SyncRange:
    """Valid interval of the master timeline."""

    master_min: float = 0.0
    master_max: float = 60.0

    # Streams did not overlap; master_min was reset to 0
    degenerate: bool = False

    @property
    def span(self) -> float:
        return self.master_max - self.master_min

    def clamp(self, master_time: float) -> float:
        return clamp(master_time, self.master_min, self.master_max)

    def contains(self, master_time: float) -> bool:
        return self.master_min <= master_time <= self.master_max

    @property
    def warning(self) -> str | None:
        if not self.degenerate:
            return None
        return (
            "Sync points leave no common overlap between streams; "
            "the timeline starts at 0 and some streams may show no media"
        )


def compute_sync_range(
    tracks: Sequence[Track],
    default: SyncRange | None = None,
) -> SyncRange:
    """
    Derive the master range from resolved offsets and durations.

    Never fails on a bad overlap: an empty or inverted range keeps
    ``master_max`` and falls back to ``master_min = 0``.

    Raises:
        UnsyncedTrackError: a track has no sync offset yet
    """
    if not tracks:
        return default or SyncRange()

    master_min = max(-track.offset for track in tracks)
    master_max = min(track.duration - track.offset for track in tracks)

    if master_min >= master_max:
        logger.warning(
            "Degenerate sync range, resetting start to 0",
            master_min=master_min,
            master_max=master_max,
            tracks=[t.display_name for t in tracks],
        )
        return SyncRange(master_min=0.0, master_max=master_max, degenerate=True)

    return SyncRange(master_min=master_min, master_max=master_max)
