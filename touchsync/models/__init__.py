"""Core data models for touchsync."""

from touchsync.models.annotation import (
    Annotation,
    SessionMetadata,
    Surface,
    TrackMetadata,
)
from touchsync.models.frames import clamp, format_time, frame_at, round_time
from touchsync.models.track import Track, strip_extension

__all__ = [
    # Tracks
    "Track",
    "strip_extension",
    # Annotations
    "Annotation",
    "Surface",
    # Interchange metadata
    "SessionMetadata",
    "TrackMetadata",
    # Frame math
    "clamp",
    "format_time",
    "frame_at",
    "round_time",
]
