"""
Error taxonomy and explicit operation results.

Internal code raises ``TouchSyncError`` subclasses; every public
operation of the annotation store, the interchange codec and the
session converts them into a ``Result`` so callers never have to
catch anything.
"""

from __future__ import annotations

import inspect
import functools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Machine-checkable failure kinds."""

    # Validation: recovered locally, state untouched
    DUPLICATE_FRAME = "duplicate_frame"
    COMMENT_REQUIRED = "comment_required"
    MALFORMED_HEADER = "malformed_header"
    MALFORMED_ROW = "malformed_row"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    INVALID_FRAME_RATE = "invalid_frame_rate"
    INVALID_TRACK = "invalid_track"
    INVALID_SURFACE = "invalid_surface"
    INVALID_PLAYBACK_RATE = "invalid_playback_rate"

    # Ambiguity: import aborted wholesale
    COLUMN_COUNT_MISMATCH = "column_count_mismatch"
    UNMATCHED_TRACK = "unmatched_track"

    # Session lifecycle
    SESSION_NOT_STARTED = "session_not_started"
    SESSION_ALREADY_STARTED = "session_already_started"
    TRACK_LIMIT = "track_limit"
    UNSYNCED_TRACK = "unsynced_track"
    UNKNOWN_TRACK = "unknown_track"


class TouchSyncError(Exception):
    """Base error carrying a failure kind and a user-facing message."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class ValidationError(TouchSyncError):
    """Rejected input: duplicate frame, missing comment, malformed rows."""


class AmbiguityError(TouchSyncError):
    """Import cannot map file columns or metadata onto registered streams."""


class SessionStateError(TouchSyncError):
    """Operation not valid in the session's current lifecycle stage."""


class UnsyncedTrackError(SessionStateError):
    """A track has no sync offset yet."""

    def __init__(self, track_name: str):
        super().__init__(
            ErrorKind.UNSYNCED_TRACK,
            f"Track '{track_name}' has no sync point set",
        )
        self.track_name = track_name


@dataclass
class Result(Generic[T]):
    """
    Outcome of a public operation.

    ``value`` holds the operation's payload on success (e.g. the index
    of a newly logged annotation). On failure ``kind`` and ``message``
    describe what went wrong. ``warnings`` collects non-fatal notices
    in both cases.
    """

    success: bool = True
    value: Optional[T] = None
    kind: Optional[ErrorKind] = None
    message: str = ""
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, value: Optional[T] = None, warnings: Optional[list[str]] = None) -> Result[T]:
        return cls(success=True, value=value, warnings=list(warnings or []))

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        warnings: Optional[list[str]] = None,
    ) -> Result[T]:
        return cls(success=False, kind=kind, message=message, warnings=list(warnings or []))

    @classmethod
    def from_error(cls, error: TouchSyncError) -> Result[T]:
        return cls.failure(error.kind, error.message)

    def __bool__(self) -> bool:
        return self.success


def returns_result(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Convert ``TouchSyncError`` raised by ``func`` into a failed ``Result``.

    Plain return values are wrapped in ``Result.ok``; a returned
    ``Result`` passes through untouched. Works on coroutine functions.
    """

    def _wrap(value: Any) -> Result:
        if isinstance(value, Result):
            return value
        return Result.ok(value)

    def _fail(error: TouchSyncError) -> Result:
        logger.info(
            "Operation rejected",
            operation=func.__qualname__,
            kind=error.kind.value,
            reason=error.message,
        )
        return Result.from_error(error)

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Result:
            try:
                return _wrap(await func(*args, **kwargs))
            except TouchSyncError as e:
                return _fail(e)

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            return _wrap(func(*args, **kwargs))
        except TouchSyncError as e:
            return _fail(e)

    return sync_wrapper
