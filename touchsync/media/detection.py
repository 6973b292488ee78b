"""
Frame-rate detection.

The sampling mechanism itself belongs to the host player; this module
wraps any detector in the session's policy: bounded wait, integer rate
clamped to a sane range, and a default on timeout or failure.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Protocol

import structlog

from touchsync.config import SessionConfig


class DetectionError(Exception):
    """Detector could not measure a rate (unsupported host, bad media)."""


class FrameRateDetector(Protocol):
    """Measures the frame rate of a media handle."""

    async def detect(self, handle: Any) -> float: ...


class FrameRateDetection:
    """
    Runs a detector under the timeout/clamp/fallback policy.

    Call sites detect one stream at a time; a detection in flight is
    never started twice for the same stream.
    """

    def __init__(
        self,
        detector: FrameRateDetector | None = None,
        config: SessionConfig | None = None,
    ):
        self.detector = detector
        self.config = config or SessionConfig()
        self.logger = structlog.get_logger(__name__)

    def clamp(self, rate: float) -> int:
        """Round to whole fps within the configured bounds."""
        if not math.isfinite(rate) or rate <= 0:
            return self.config.default_frame_rate
        return max(
            self.config.min_frame_rate,
            min(self.config.max_frame_rate, round(rate)),
        )

    async def detect(self, handle: Any, name: str = "") -> int:
        """Detected rate, or the default when detection is unavailable."""
        if self.detector is None:
            return self.config.default_frame_rate

        try:
            rate = await asyncio.wait_for(
                self.detector.detect(handle),
                timeout=self.config.detection_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                "Frame-rate detection timed out, using default",
                track=name,
                timeout=self.config.detection_timeout_seconds,
                default=self.config.default_frame_rate,
            )
            return self.config.default_frame_rate
        except Exception as e:
            # Host decoders (cv2.error, player callbacks) raise arbitrary types
            self.logger.warning(
                "Frame-rate detection failed, using default",
                track=name,
                error=str(e),
                error_type=type(e).__name__,
                default=self.config.default_frame_rate,
            )
            return self.config.default_frame_rate

        detected = self.clamp(rate)
        self.logger.info("Detected frame rate", track=name, fps=detected)
        return detected


class OpenCVFrameRateDetector:
    """Reads the container's nominal frame rate through OpenCV."""

    async def detect(self, handle: Any) -> float:
        path = getattr(handle, "source_path", None)
        if not path:
            raise DetectionError("Handle is not backed by a file")
        return await asyncio.to_thread(self._read_fps, str(path))

    @staticmethod
    def _read_fps(path: str) -> float:
        import cv2

        cap = cv2.VideoCapture(path)
        try:
            if not cap.isOpened():
                raise DetectionError(f"Could not open video: {path}")
            fps = cap.get(cv2.CAP_PROP_FPS)
        finally:
            cap.release()

        if not fps or fps <= 0:
            raise DetectionError(f"No frame rate in container: {path}")
        return fps
