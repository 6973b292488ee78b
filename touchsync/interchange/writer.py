"""Session export."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

import structlog

from touchsync.interchange.fields import SEPARATOR, quote_field
from touchsync.models.annotation import Annotation, SessionMetadata, TrackMetadata
from touchsync.models.frames import format_time
from touchsync.models.track import Track

logger = structlog.get_logger(__name__)

ROW_SEPARATOR = "\r\n"
METADATA_MARKER = "#meta "
BASE_COLUMNS = ("frame", "time_s", "surface", "comment")


def column_label(track: Track) -> str:
    """Track name as written into a column header (no extension, no separators)."""
    return track.base_name.replace(SEPARATOR, ";")


def track_column_name(position: int, track: Track) -> str:
    """Header of a per-track frame column, ``frame_<n>_<name>`` (1-based)."""
    return f"frame_{position}_{column_label(track)}"


def build_metadata(tracks: Sequence[Track]) -> SessionMetadata:
    return SessionMetadata(
        tracks=[
            TrackMetadata(
                track_name=track.display_name,
                sync_offset=track.offset,
                frame_rate=track.frame_rate,
            )
            for track in tracks
        ]
    )


def suggest_export_filename(now: datetime | None = None) -> str:
    """``touches_2024-01-15-14-30-00.csv`` style name for a download."""
    now = now or datetime.now()
    return f"touches_{now.strftime('%Y-%m-%d-%H-%M-%S')}.csv"


class SessionWriter:
    """
    Serializes tracks and annotations to the interchange text format.

    Layout::

        #meta {"version": 1, "tracks": [...]}
        frame,time_s,surface,comment,frame_1_<name>,...
        <one row per annotation>

    Each per-track column holds the annotation's frame number in that
    stream's own clock.
    """

    def __init__(self, metadata_marker: str = METADATA_MARKER):
        self.metadata_marker = metadata_marker
        self.logger = structlog.get_logger(__name__)

    def header(self, tracks: Sequence[Track]) -> list[str]:
        return [*BASE_COLUMNS, *(track_column_name(i, t) for i, t in enumerate(tracks, 1))]

    def row(self, annotation: Annotation, tracks: Sequence[Track]) -> list[str]:
        return [
            str(annotation.frame),
            format_time(annotation.time),
            annotation.surface.value if annotation.surface else "",
            quote_field(annotation.comment),
            *(str(track.local_frame(annotation.time)) for track in tracks),
        ]

    def metadata_line(self, tracks: Sequence[Track]) -> str:
        payload = build_metadata(tracks).model_dump_json(by_alias=True)
        return f"{self.metadata_marker}{payload}"

    def write(self, tracks: Sequence[Track], annotations: Sequence[Annotation]) -> str:
        """
        Render the full export text.

        Raises:
            UnsyncedTrackError: a track has no sync offset
        """
        lines = [self.metadata_line(tracks), SEPARATOR.join(self.header(tracks))]
        lines.extend(SEPARATOR.join(self.row(a, tracks)) for a in annotations)

        self.logger.info(
            "Exported session",
            tracks=len(tracks),
            annotations=len(annotations),
        )
        return ROW_SEPARATOR.join(lines)
