"""
Media handle contract and a headless implementation.

The clock only needs a seekable, playable source reporting its
position. Real players (a browser video element, a Qt player, ...)
adapt to ``MediaHandle``; ``SimulatedMediaHandle`` advances with a
wall clock and is used by the CLI and in tests.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class MediaHandle(Protocol):
    """Seekable, playable media source."""

    position: float  # Seconds, settable to seek
    duration: float
    playback_rate: float

    @property
    def paused(self) -> bool: ...

    @property
    def ended(self) -> bool: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...


async def wait_for_metadata(handle: MediaHandle) -> None:
    """
    Suspend until the handle reports its duration.

    Handles without an async ``wait_for_metadata`` are assumed to
    have metadata loaded already.
    """
    waiter = getattr(handle, "wait_for_metadata", None)
    if waiter is not None:
        await waiter()


class SimulatedMediaHandle:
    """
    Media handle driven by a monotonic clock instead of decoded media.

    Position advances by ``elapsed * playback_rate`` while playing and
    stops at ``duration`` (reporting ``ended``). ``clock`` is injectable
    so tests can step time deterministically.
    """

    def __init__(
        self,
        duration: float,
        name: str = "",
        clock: Callable[[], float] = time.monotonic,
        source_path: Optional[str] = None,
    ):
        self.duration = duration
        self.name = name
        self.source_path = source_path
        self.playback_rate = 1.0
        self._clock = clock
        self._position = 0.0
        self._started_at: Optional[float] = None
        self.seek_count = 0

    def _advance(self) -> None:
        if self._started_at is None:
            return
        now = self._clock()
        self._position += (now - self._started_at) * self.playback_rate
        self._started_at = now
        if self._position >= self.duration:
            self._position = self.duration
            self._started_at = None

    @property
    def position(self) -> float:
        self._advance()
        return self._position

    @position.setter
    def position(self, value: float) -> None:
        self._advance()
        self._position = max(0.0, min(self.duration, value))
        self.seek_count += 1

    @property
    def paused(self) -> bool:
        self._advance()
        return self._started_at is None

    @property
    def ended(self) -> bool:
        return self.position >= self.duration

    def play(self) -> None:
        if self.ended:
            return
        if self._started_at is None:
            self._started_at = self._clock()

    def pause(self) -> None:
        self._advance()
        self._started_at = None

    def __repr__(self) -> str:
        return f"SimulatedMediaHandle(name={self.name!r}, duration={self.duration})"
