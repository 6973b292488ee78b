"""Parsing of exported session files."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from touchsync.errors import ErrorKind, ValidationError
from touchsync.interchange.fields import split_row
from touchsync.interchange.writer import METADATA_MARKER
from touchsync.models.annotation import Annotation, SessionMetadata, Surface

logger = structlog.get_logger(__name__)

COMMENT_PREFIX = "#"
REQUIRED_COLUMNS = ("frame", "time_s")

_TRACK_COLUMN = re.compile(r"^frame_(\d+)_(.*)$")


@dataclass
class TrackColumn:
    """A per-track frame column found in the header."""

    number: int  # The <n> in frame_<n>_<name>
    name: str
    position: int  # Field index in each row


@dataclass
class ParsedRow:
    """One data row: the annotation plus its per-track local frames."""

    line_number: int
    annotation: Annotation

    # Aligned with ParsedSession.track_columns; None for empty cells
    local_frames: list[Optional[int]] = field(default_factory=list)


@dataclass
class ParsedSession:
    """Everything read from an interchange file, before it is applied."""

    header: list[str] = field(default_factory=list)
    metadata: Optional[SessionMetadata] = None
    track_columns: list[TrackColumn] = field(default_factory=list)
    rows: list[ParsedRow] = field(default_factory=list)

    @property
    def has_metadata(self) -> bool:
        return self.metadata is not None

    @property
    def annotations(self) -> list[Annotation]:
        return [row.annotation for row in self.rows]

    @property
    def master_times(self) -> list[float]:
        return [row.annotation.time for row in self.rows]

    def local_frames(self, column_index: int) -> list[Optional[int]]:
        """All rows' frames for one track column."""
        return [row.local_frames[column_index] for row in self.rows]


class SessionReader:
    """
    Line-oriented parser for the interchange format.

    - ``#meta `` lines carry the JSON sync metadata; if it cannot be
      decoded it is ignored (the file is then treated as legacy)
    - other ``#`` lines and blank lines are skipped
    - the first remaining line is the header, the rest are data rows
    """

    def __init__(self, metadata_marker: str = METADATA_MARKER):
        self.metadata_marker = metadata_marker
        self.logger = structlog.get_logger(__name__)

    def parse(self, text: str) -> ParsedSession:
        """
        Parse export text.

        Raises:
            ValidationError: missing/incomplete header or a bad data row
        """
        parsed = ParsedSession()
        columns: dict[str, int] = {}

        for line_number, raw in enumerate(text.lstrip("\ufeff").splitlines(), 1):
            line = raw.strip()
            if not line:
                continue

            if line.startswith(self.metadata_marker.strip()):
                metadata = self._decode_metadata(line, line_number)
                if metadata is not None:
                    parsed.metadata = metadata
                continue

            if line.startswith(COMMENT_PREFIX):
                continue

            if not parsed.header:
                parsed.header = [h.strip() for h in split_row(line)]
                columns = self._index_header(parsed.header, line_number)
                parsed.track_columns = self._track_columns(parsed.header)
                continue

            parsed.rows.append(
                self._parse_row(line, line_number, columns, parsed.track_columns)
            )

        if not parsed.header:
            raise ValidationError(ErrorKind.MALFORMED_HEADER, "File has no header row")

        self.logger.debug(
            "Parsed session file",
            rows=len(parsed.rows),
            track_columns=len(parsed.track_columns),
            has_metadata=parsed.has_metadata,
        )
        return parsed

    def _decode_metadata(self, line: str, line_number: int) -> Optional[SessionMetadata]:
        payload = line[len(self.metadata_marker.strip()):].strip()
        try:
            return SessionMetadata.model_validate_json(payload)
        except PydanticValidationError as e:
            self.logger.debug(
                "Ignoring undecodable metadata line",
                line=line_number,
                error=str(e),
            )
            return None

    def _index_header(self, header: list[str], line_number: int) -> dict[str, int]:
        columns = {name: i for i, name in enumerate(header)}
        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise ValidationError(
                ErrorKind.MALFORMED_HEADER,
                f"Header on line {line_number} lacks column(s): {', '.join(missing)}",
            )
        return columns

    def _track_columns(self, header: list[str]) -> list[TrackColumn]:
        found = []
        for position, name in enumerate(header):
            match = _TRACK_COLUMN.match(name)
            if match:
                found.append(
                    TrackColumn(
                        number=int(match.group(1)),
                        name=match.group(2),
                        position=position,
                    )
                )
        return sorted(found, key=lambda c: c.number)

    def _parse_row(
        self,
        line: str,
        line_number: int,
        columns: dict[str, int],
        track_columns: list[TrackColumn],
    ) -> ParsedRow:
        fields = split_row(line)

        def cell(name: str) -> str:
            position = columns.get(name)
            if position is None or position >= len(fields):
                return ""
            return fields[position].strip()

        try:
            frame = int(cell("frame"))
            time = float(cell("time_s"))
            if not math.isfinite(time):
                raise ValueError(f"time_s is not a finite number: {time}")
            surface = Surface(cell("surface").lower()) if cell("surface") else None
            comment = cell("comment") if "comment" in columns else ""
            annotation = Annotation(
                frame=frame,
                time=time,
                surface=surface,
                comment=comment if surface is Surface.OTHER else "",
            )
            local_frames = [
                self._optional_int(fields, column.position) for column in track_columns
            ]
        except (ValueError, OverflowError, PydanticValidationError) as e:
            raise ValidationError(
                ErrorKind.MALFORMED_ROW,
                f"Line {line_number} is not a valid touch row: {line}",
            ) from e

        return ParsedRow(
            line_number=line_number,
            annotation=annotation,
            local_frames=local_frames,
        )

    @staticmethod
    def _optional_int(fields: list[str], position: int) -> Optional[int]:
        if position >= len(fields) or not fields[position].strip():
            return None
        value = float(fields[position])
        if not math.isfinite(value):
            raise ValueError(f"frame is not a finite number: {value}")
        return int(round(value))
