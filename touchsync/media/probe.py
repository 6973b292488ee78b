"""Video file probing for stream registration."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from touchsync.media.handles import SimulatedMediaHandle

VIDEO_EXTENSIONS = {".mp4", ".mov", ".mkv", ".webm", ".avi"}


@dataclass
class VideoInfo:
    """Container properties of a video file."""

    path: Path
    duration: float
    frame_rate: float
    frame_count: int
    width: int
    height: int

    @property
    def name(self) -> str:
        return self.path.name


def is_video_file(path: Path | str) -> bool:
    return Path(path).suffix.lower() in VIDEO_EXTENSIONS


def probe_video(video_path: Path | str) -> VideoInfo:
    """
    Read duration and frame rate of a video file.

    Raises:
        ValueError: the file cannot be opened or reports no frames
    """
    import cv2

    video_path = Path(video_path)
    cap = cv2.VideoCapture(str(video_path))

    if not cap.isOpened():
        raise ValueError(f"Could not open video: {video_path}")

    try:
        fps = cap.get(cv2.CAP_PROP_FPS)
        frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    finally:
        cap.release()

    duration = frame_count / fps if fps > 0 else 0
    if duration <= 0:
        raise ValueError(f"Video reports no duration: {video_path}")

    return VideoInfo(
        path=video_path,
        duration=duration,
        frame_rate=fps,
        frame_count=frame_count,
        width=width,
        height=height,
    )


def open_video(
    video_path: Path | str,
    clock: Callable[[], float] = time.monotonic,
) -> SimulatedMediaHandle:
    """Headless handle for a video file, timed by ``clock``."""
    info = probe_video(video_path)
    return SimulatedMediaHandle(
        info.duration,
        name=info.name,
        clock=clock,
        source_path=str(info.path),
    )
