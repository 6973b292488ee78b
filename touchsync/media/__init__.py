"""Media sources: handle contract, file probing and frame-rate detection."""

from touchsync.media.detection import (
    DetectionError,
    FrameRateDetection,
    FrameRateDetector,
    OpenCVFrameRateDetector,
)
from touchsync.media.handles import MediaHandle, SimulatedMediaHandle, wait_for_metadata
from touchsync.media.probe import VideoInfo, is_video_file, open_video, probe_video

__all__ = [
    "DetectionError",
    "FrameRateDetection",
    "FrameRateDetector",
    "OpenCVFrameRateDetector",
    "MediaHandle",
    "SimulatedMediaHandle",
    "wait_for_metadata",
    "VideoInfo",
    "is_video_file",
    "open_video",
    "probe_video",
]
