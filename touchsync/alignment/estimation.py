"""
Stream identity matching and sync offset estimation.

Used when a session is restored from a file: file-side track names are
matched to registered streams, and, when a file carries no sync
metadata, each stream's offset is re-derived from the per-track frame
numbers recorded next to every annotation.
"""

from __future__ import annotations

import re
import statistics
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence, TypeVar

import structlog

from touchsync.models.track import strip_extension

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_SEPARATORS = re.compile(r"[\s_\-.]+")


def normalize_name(name: str, strip_ext: bool = True) -> str:
    """
    Canonical form for comparing stream names.

    Lowercase, extension stripped, runs of separators collapsed to a
    single space, trimmed: ``"Cam_A-left.MP4"`` -> ``"cam a left"``.

    Pass ``strip_ext=False`` for names that already had their extension
    removed (export column names), so ``"game.cam1"`` keeps its suffix.
    """
    base = name.strip().lower()
    if strip_ext:
        base = strip_extension(base)
    return _SEPARATORS.sub(" ", base).strip()


def names_match(a: str, b: str, strip_ext: bool = True) -> bool:
    """Exact match after normalization."""
    return normalize_name(a, strip_ext) == normalize_name(b, strip_ext)


def names_overlap(a: str, b: str, strip_ext: bool = True) -> bool:
    """Either normalized name contains the other."""
    na, nb = normalize_name(a, strip_ext), normalize_name(b, strip_ext)
    if not na or not nb:
        return False
    return na in nb or nb in na


@dataclass
class MatchResult:
    """Outcome of matching file-side names onto registered items."""

    # name index -> matched item
    matches: dict[int, Any] = field(default_factory=dict)

    # name indices with no match
    unmatched_names: list[int] = field(default_factory=list)

    # items nobody claimed, in registration order
    unclaimed: list[Any] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unmatched_names


def match_names(
    names: Sequence[str],
    items: Sequence[T],
    key: Callable[[T], str] = lambda item: item.display_name,
    strip_ext: bool = True,
) -> MatchResult:
    """
    Match each name to at most one item.

    All exact (normalized) matches are resolved first; remaining names
    then fall back to substring containment in either direction. An
    item is claimed by at most one name. With ``strip_ext=False`` both
    sides are compared without removing a trailing extension.
    """
    matches: dict[int, T] = {}
    claimed: set[int] = set()

    for matcher in (names_match, names_overlap):
        for name_idx, name in enumerate(names):
            if name_idx in matches:
                continue
            for item_idx, item in enumerate(items):
                if item_idx in claimed:
                    continue
                if matcher(name, key(item), strip_ext):
                    matches[name_idx] = item
                    claimed.add(item_idx)
                    break

    unmatched = [i for i in range(len(names)) if i not in matches]
    unclaimed = [item for i, item in enumerate(items) if i not in claimed]

    if unmatched:
        logger.debug(
            "Unmatched stream names",
            names=[names[i] for i in unmatched],
        )

    return MatchResult(matches=matches, unmatched_names=unmatched, unclaimed=unclaimed)


@dataclass
class OffsetEstimate:
    """Sync offset recovered for one stream from per-row samples."""

    track_name: str
    offset: float = 0.0
    sample_count: int = 0

    # Median absolute deviation of the samples, in seconds
    spread: float = 0.0

    determination_method: str = ""

    @property
    def reliable(self) -> bool:
        return self.sample_count > 0


class OffsetEstimator:
    """
    Robust offset estimation from (local frame, master time) pairs.

    Every annotation row gives one sample
    ``local_frame / frame_rate - master_time``. The median is used so
    a few mis-keyed rows or rounding outliers do not pull the result.
    """

    def __init__(self, spread_warning_seconds: float = 0.5):
        self.spread_warning_seconds = spread_warning_seconds
        self.logger = structlog.get_logger(__name__)

    def samples(
        self,
        local_frames: Sequence[int | None],
        master_times: Sequence[float],
        frame_rate: float,
    ) -> list[float]:
        """Offset samples for rows where the local frame is present."""
        return [
            frame / frame_rate - master_time
            for frame, master_time in zip(local_frames, master_times)
            if frame is not None
        ]

    def estimate(
        self,
        track_name: str,
        local_frames: Sequence[int | None],
        master_times: Sequence[float],
        frame_rate: float,
    ) -> OffsetEstimate:
        samples = self.samples(local_frames, master_times, frame_rate)

        if not samples:
            return OffsetEstimate(
                track_name=track_name,
                determination_method="no samples (default offset)",
            )

        offset = statistics.median(samples)
        spread = statistics.median(abs(s - offset) for s in samples)

        if spread > self.spread_warning_seconds:
            self.logger.warning(
                "Offset samples disagree",
                track=track_name,
                spread=spread,
                samples=len(samples),
            )

        return OffsetEstimate(
            track_name=track_name,
            offset=offset,
            sample_count=len(samples),
            spread=spread,
            determination_method=f"median of {len(samples)} samples",
        )
