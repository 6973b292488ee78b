"""
Temporal alignment of independently recorded streams.

- Shared timeline bounds from per-stream offsets
- Master clock with follower drift correction
- Stream name matching and offset re-estimation
"""

from touchsync.alignment.clock import ClockState, MasterClock
from touchsync.alignment.estimation import (
    MatchResult,
    OffsetEstimate,
    OffsetEstimator,
    match_names,
    normalize_name,
)
from touchsync.alignment.sync_range import SyncRange, compute_sync_range

__all__ = [
    "ClockState",
    "MasterClock",
    "MatchResult",
    "OffsetEstimate",
    "OffsetEstimator",
    "match_names",
    "normalize_name",
    "SyncRange",
    "compute_sync_range",
]
