"""Ordered, frame-unique annotation store."""

from __future__ import annotations

import bisect
from typing import Iterable, Iterator, Optional

import structlog

from touchsync.errors import ErrorKind, ValidationError, returns_result
from touchsync.models.annotation import Annotation, Surface
from touchsync.models.frames import frame_at, round_time

logger = structlog.get_logger(__name__)


def coerce_surface(surface: Surface | str | None) -> Surface | None:
    """Accept enum members, their string values, or None."""
    if surface is None or isinstance(surface, Surface):
        return surface
    try:
        return Surface(surface.strip().lower())
    except ValueError:
        raise ValidationError(
            ErrorKind.INVALID_SURFACE,
            f"Unknown surface '{surface}'",
        ) from None


def _checked_comment(surface: Surface | None, comment: str | None) -> str:
    comment = (comment or "").strip()
    if surface is Surface.OTHER and not comment:
        raise ValidationError(
            ErrorKind.COMMENT_REQUIRED,
            "Surface 'other' needs a comment",
        )
    return comment if surface is Surface.OTHER else ""


class AnnotationStore:
    """
    Touches keyed by master-timeline frame, always sorted by frame.

    One annotation per frame: logging onto an occupied frame is
    rejected and the caller has to delete the existing entry first.

    Callers holding an index into the store (an edit cursor) must
    pass it through ``reconcile_cursor`` after every deletion.
    """

    def __init__(self, annotations: Iterable[Annotation] = ()):
        self._items: list[Annotation] = []
        self.replace_all(annotations)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Annotation:
        return self._items[index]

    @property
    def annotations(self) -> list[Annotation]:
        return list(self._items)

    @property
    def frames(self) -> list[int]:
        return [a.frame for a in self._items]

    @staticmethod
    def current_frame_for(time: float, frame_rate: float) -> int:
        """Frame matching a clock position; compared by exact equality."""
        return frame_at(time, frame_rate)

    @staticmethod
    def reconcile_cursor(cursor: Optional[int], deleted_index: int) -> Optional[int]:
        """Cursor value after ``deleted_index`` was removed."""
        if cursor is None or cursor == deleted_index:
            return None
        if cursor > deleted_index:
            return cursor - 1
        return cursor

    def index_of_frame(self, frame: int) -> Optional[int]:
        frames = self.frames
        i = bisect.bisect_left(frames, frame)
        if i < len(frames) and frames[i] == frame:
            return i
        return None

    def find_at(self, time: float, frame_rate: float) -> Optional[int]:
        """Index of the annotation on the frame shown at ``time``, if any."""
        return self.index_of_frame(self.current_frame_for(time, frame_rate))

    @returns_result
    def log_at(
        self,
        time: float,
        frame_rate: float,
        surface: Surface | str | None = None,
        comment: str = "",
    ) -> int:
        """
        Log a touch at ``time`` and return its index.

        Fails with DUPLICATE_FRAME when the frame is already logged and
        with COMMENT_REQUIRED for an 'other' touch without a comment.
        """
        frame = frame_at(time, frame_rate)
        if self.index_of_frame(frame) is not None:
            raise ValidationError(
                ErrorKind.DUPLICATE_FRAME,
                f"Frame {frame} already logged, delete it first",
            )

        surface = coerce_surface(surface)
        comment = _checked_comment(surface, comment)

        index = self._insert(
            Annotation(frame=frame, time=round_time(time), surface=surface, comment=comment)
        )
        logger.info("Logged touch", frame=frame, surface=surface, index=index)
        return index

    @returns_result
    def assign_surface(
        self,
        index: int,
        surface: Surface | str | None,
        comment: str = "",
    ) -> Annotation:
        """Change the surface of an existing touch; non-'other' drops the comment."""
        self._check_index(index)
        surface = coerce_surface(surface)
        comment = _checked_comment(surface, comment)

        updated = self._items[index].with_surface(surface, comment)
        self._items[index] = updated
        logger.info("Updated touch", frame=updated.frame, surface=surface)
        return updated

    @returns_result
    def delete(self, index: int) -> Annotation:
        self._check_index(index)
        removed = self._items.pop(index)
        logger.info("Deleted touch", frame=removed.frame, index=index)
        return removed

    @returns_result
    def clear(self) -> int:
        """Remove everything; returns how many touches were dropped."""
        count = len(self._items)
        self._items.clear()
        return count

    def replace_all(self, annotations: Iterable[Annotation]) -> None:
        """
        Swap in a complete list (import).

        Validates the whole list before touching the store.

        Raises:
            ValidationError: two annotations share a frame
        """
        incoming = sorted(annotations, key=lambda a: a.frame)
        for previous, current in zip(incoming, incoming[1:]):
            if previous.frame == current.frame:
                raise ValidationError(
                    ErrorKind.DUPLICATE_FRAME,
                    f"Frame {current.frame} appears more than once",
                )
        self._items = incoming

    def _insert(self, annotation: Annotation) -> int:
        index = bisect.bisect_left(self.frames, annotation.frame)
        self._items.insert(index, annotation)
        return index

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._items):
            raise ValidationError(
                ErrorKind.INDEX_OUT_OF_RANGE,
                f"No touch at position {index}",
            )
