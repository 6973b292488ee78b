"""
Interchange codec: export and restore labeled sessions as text.

Row-oriented, comma separated, CRLF terminated, with an optional
``#meta`` line carrying per-track sync offsets and frame rates.
"""

from touchsync.interchange.fields import quote_field, split_row
from touchsync.interchange.reader import ParsedRow, ParsedSession, SessionReader, TrackColumn
from touchsync.interchange.recovery import (
    RestorePlan,
    TrackRestore,
    derive_sync_offsets_from_csv,
    restore_from_metadata,
    restore_legacy,
)
from touchsync.interchange.writer import (
    METADATA_MARKER,
    SessionWriter,
    column_label,
    suggest_export_filename,
    track_column_name,
)

__all__ = [
    "quote_field",
    "split_row",
    "ParsedRow",
    "ParsedSession",
    "SessionReader",
    "TrackColumn",
    "RestorePlan",
    "TrackRestore",
    "derive_sync_offsets_from_csv",
    "restore_from_metadata",
    "restore_legacy",
    "METADATA_MARKER",
    "SessionWriter",
    "column_label",
    "suggest_export_filename",
    "track_column_name",
]
