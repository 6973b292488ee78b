"""Annotation ("touch") models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Surface(str, Enum):
    """Body surface involved in a touch."""

    FOOT = "foot"
    HEAD = "head"
    ARM = "arm"
    TORSO = "torso"
    OTHER = "other"  # Free text comment required

    @property
    def requires_comment(self) -> bool:
        return self is Surface.OTHER


class Annotation(BaseModel):
    """A labeled event at one master-timeline frame."""

    model_config = ConfigDict(frozen=True)

    frame: int
    time: float  # Seconds on the master timeline
    surface: Surface | None = None  # None until assigned
    comment: str = ""

    @model_validator(mode="after")
    def _comment_matches_surface(self) -> Annotation:
        if self.surface is Surface.OTHER and not self.comment.strip():
            raise ValueError("surface 'other' requires a comment")
        if self.surface is not Surface.OTHER and self.comment:
            raise ValueError("only surface 'other' carries a comment")
        return self

    def with_surface(self, surface: Surface | None, comment: str = "") -> Annotation:
        """Copy with a new surface; frame and time never change."""
        return Annotation(
            frame=self.frame,
            time=self.time,
            surface=surface,
            comment=comment if surface is Surface.OTHER else "",
        )

    @property
    def label(self) -> str:
        """Human readable surface label."""
        if self.surface is None:
            return "unassigned"
        if self.surface is Surface.OTHER:
            return f"other: {self.comment}"
        return self.surface.value


class TrackMetadata(BaseModel):
    """Sync metadata for one track, embedded in exported files."""

    model_config = ConfigDict(populate_by_name=True)

    track_name: str = Field(alias="trackName")
    sync_offset: float = Field(alias="syncOffset")
    frame_rate: float = Field(alias="frameRate", gt=0)


class SessionMetadata(BaseModel):
    """Structured record carried on the metadata line of an export."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = 1
    tracks: list[TrackMetadata] = Field(default_factory=list)
