"""
Shared test doubles.

FakeHandle stands in for a media player: it never advances on its
own, so tests move positions by hand and then drive ``tick()``.
"""

import asyncio

import pytest

from touchsync.media.detection import DetectionError


class FakeHandle:
    """Media handle whose position only changes when told to."""

    def __init__(self, duration=30.0, name="", position=0.0, loads_metadata=False):
        self.name = name
        self._duration = duration
        self.duration = None if loads_metadata else duration
        self._position = position
        self.playback_rate = 1.0
        self.paused = True
        self.ended = False
        self.seeks = []
        self.play_calls = 0

    @property
    def position(self):
        return self._position

    @position.setter
    def position(self, value):
        self.seeks.append(value)
        self._position = value

    def drift_to(self, value):
        """Move without recording a seek (simulates playback progress)."""
        self._position = value

    async def wait_for_metadata(self):
        await asyncio.sleep(0)
        self.duration = self._duration

    def play(self):
        self.paused = False
        self.play_calls += 1

    def pause(self):
        self.paused = True


class FakeDetector:
    """Returns a fixed frame rate per handle name."""

    def __init__(self, rates=None, default=25.0):
        self.rates = rates or {}
        self.default = default
        self.calls = []

    async def detect(self, handle):
        self.calls.append(handle.name)
        return self.rates.get(handle.name, self.default)


class SlowDetector:
    """Never finishes within a short timeout."""

    async def detect(self, handle):
        await asyncio.sleep(5)
        return 60.0


class BrokenDetector:
    """Host without frame callbacks."""

    async def detect(self, handle):
        raise DetectionError("frame callbacks unsupported")


@pytest.fixture
def make_handle():
    return FakeHandle


@pytest.fixture
def fake_detector():
    return FakeDetector


@pytest.fixture
def slow_detector():
    return SlowDetector()


@pytest.fixture
def broken_detector():
    return BrokenDetector()


class CrashingDetector:
    """Decoder failure of a type the host does not document."""

    async def detect(self, handle):
        raise RuntimeError("decoder crashed")


@pytest.fixture
def crashing_detector():
    return CrashingDetector()
