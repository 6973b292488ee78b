"""Session configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields


@dataclass
class SessionConfig:
    """Tunables for a labeling session."""

    # Stream registration
    max_tracks: int = 4

    # Frame rates
    default_frame_rate: int = 25
    min_frame_rate: int = 10
    max_frame_rate: int = 120
    max_override_frame_rate: int = 120

    # Playback
    seek_deadband_seconds: float = 0.001
    drift_threshold_seconds: float = 0.08
    playback_rate: float = 1.0

    # Frame-rate detection
    detection_timeout_seconds: float = 10.0

    # Interchange
    metadata_marker: str = "#meta "

    # Master range used before any stream is registered
    default_master_min: float = 0.0
    default_master_max: float = 60.0

    def __post_init__(self):
        if self.min_frame_rate > self.max_frame_rate:
            raise ValueError("min_frame_rate must not exceed max_frame_rate")
        if self.drift_threshold_seconds <= self.seek_deadband_seconds:
            raise ValueError("drift threshold must be wider than the seek deadband")

    @classmethod
    def from_env(cls, prefix: str = "TOUCHSYNC_") -> SessionConfig:
        """
        Build a config from environment variables.

        Each field maps to ``<prefix><FIELD_NAME>``, e.g.
        ``TOUCHSYNC_DRIFT_THRESHOLD_SECONDS=0.05``. Unset variables
        keep the defaults.
        """
        overrides = {}
        for f in fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            default = f.default
            if isinstance(default, int):
                overrides[f.name] = int(raw)
            elif isinstance(default, float):
                overrides[f.name] = float(raw)
            else:
                overrides[f.name] = raw
        return cls(**overrides)
