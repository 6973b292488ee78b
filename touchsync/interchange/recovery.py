"""
Rebuilding sync state from a parsed session file.

Two paths:

1. Metadata present: each metadata entry is matched to a registered
   stream by name and its offset/frame rate are taken verbatim.
2. Legacy file (no metadata): frame rates are re-detected and offsets
   are estimated from the per-track frame columns, one sample per row,
   resolved by median.

Nothing here mutates tracks. The result is a ``RestorePlan`` the
session commits only when the whole import succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence
from uuid import UUID

import structlog

from touchsync.alignment.estimation import OffsetEstimate, OffsetEstimator, match_names
from touchsync.config import SessionConfig
from touchsync.errors import AmbiguityError, ErrorKind
from touchsync.interchange.reader import ParsedSession
from touchsync.interchange.writer import column_label
from touchsync.media.detection import FrameRateDetection
from touchsync.models.annotation import Annotation
from touchsync.models.track import Track

logger = structlog.get_logger(__name__)


@dataclass
class TrackRestore:
    """Sync state to apply to one registered track."""

    track_id: UUID
    sync_offset: float
    frame_rate: float
    source: str = ""  # metadata | estimated | default


@dataclass
class RestorePlan:
    """Everything an import will commit, computed up front."""

    used_metadata: bool = False
    tracks: dict[UUID, TrackRestore] = field(default_factory=dict)
    annotations: list[Annotation] = field(default_factory=list)
    estimates: list[OffsetEstimate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def restore_from_metadata(
    parsed: ParsedSession,
    tracks: Sequence[Track],
    config: SessionConfig | None = None,
) -> RestorePlan:
    """
    Map metadata entries onto registered streams.

    Raises:
        AmbiguityError: a metadata entry matches no registered stream
    """
    config = config or SessionConfig()
    entries = parsed.metadata.tracks if parsed.metadata else []
    result = match_names([e.track_name for e in entries], tracks)

    if not result.complete:
        missing = ", ".join(entries[i].track_name for i in result.unmatched_names)
        raise AmbiguityError(
            ErrorKind.UNMATCHED_TRACK,
            f"No loaded video matches track(s) from the file: {missing}",
        )

    plan = RestorePlan(used_metadata=True, annotations=parsed.annotations)
    for i, entry in enumerate(entries):
        track = result.matches[i]
        plan.tracks[track.id] = TrackRestore(
            track_id=track.id,
            sync_offset=entry.sync_offset,
            frame_rate=entry.frame_rate,
            source="metadata",
        )

    for track in result.unclaimed:
        plan.tracks[track.id] = TrackRestore(
            track_id=track.id,
            sync_offset=0.0,
            frame_rate=config.default_frame_rate,
            source="default",
        )
        plan.warnings.append(
            f"'{track.display_name}' is not in the file's sync data; "
            f"using offset 0 and {config.default_frame_rate} fps"
        )
        logger.warning("Stream missing from metadata", track=track.display_name)

    return plan


def derive_sync_offsets_from_csv(
    parsed: ParsedSession,
    tracks: Sequence[Track],
    frame_rates: dict[UUID, float],
    estimator: OffsetEstimator | None = None,
) -> list[OffsetEstimate]:
    """
    Estimate each stream's offset from the file's per-track frame columns.

    ``frame_rates`` holds the (re-)detected rate per track id. Returns
    one estimate per registered track, in registration order.

    Raises:
        AmbiguityError: column count differs from the stream count, or a
            column matches no stream
    """
    estimator = estimator or OffsetEstimator()
    columns = parsed.track_columns

    if not columns:
        return [
            OffsetEstimate(track_name=t.display_name, determination_method="no frame columns")
            for t in tracks
        ]

    if len(columns) != len(tracks):
        raise AmbiguityError(
            ErrorKind.COLUMN_COUNT_MISMATCH,
            f"File has {len(columns)} video column(s) but {len(tracks)} video(s) are loaded",
        )

    # Column names were written without their extension
    result = match_names(
        [c.name for c in columns],
        tracks,
        key=column_label,
        strip_ext=False,
    )
    if not result.complete:
        missing = ", ".join(columns[i].name for i in result.unmatched_names)
        raise AmbiguityError(
            ErrorKind.UNMATCHED_TRACK,
            f"No loaded video matches column(s): {missing}",
        )

    by_track: dict[UUID, OffsetEstimate] = {}
    master_times = parsed.master_times
    for column_index, track in result.matches.items():
        by_track[track.id] = estimator.estimate(
            track.display_name,
            parsed.local_frames(column_index),
            master_times,
            frame_rates[track.id],
        )

    return [by_track[t.id] for t in tracks]


async def restore_legacy(
    parsed: ParsedSession,
    tracks: Sequence[Track],
    detection: FrameRateDetection,
    estimator: OffsetEstimator | None = None,
) -> RestorePlan:
    """
    Rebuild sync state for a file without metadata.

    Frame rates are re-detected first, one stream at a time.

    Raises:
        AmbiguityError: columns cannot be mapped onto the streams
    """
    frame_rates: dict[UUID, float] = {}
    for track in tracks:
        frame_rates[track.id] = await detection.detect(track.handle, name=track.display_name)

    estimates = derive_sync_offsets_from_csv(parsed, tracks, frame_rates, estimator)

    plan = RestorePlan(used_metadata=False, annotations=parsed.annotations, estimates=estimates)
    for track, estimate in zip(tracks, estimates):
        plan.tracks[track.id] = TrackRestore(
            track_id=track.id,
            sync_offset=estimate.offset,
            frame_rate=frame_rates[track.id],
            source="estimated" if estimate.reliable else "default",
        )
        if parsed.track_columns and not estimate.reliable:
            plan.warnings.append(
                f"No frame numbers for '{track.display_name}' in the file; using offset 0"
            )

    logger.info(
        "Derived sync offsets from legacy file",
        offsets={e.track_name: round(e.offset, 6) for e in estimates},
    )
    return plan
