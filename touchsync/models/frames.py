"""Frame/time conversions shared by the clock, the store and the codec."""

from __future__ import annotations

import math

# Seconds are persisted with this many decimals
TIME_DECIMALS = 6


def frame_at(time: float, frame_rate: float) -> int:
    """
    Frame index for a time in seconds.

    Halves round up (towards +inf), so a time exactly between two
    frames always lands on the later one regardless of parity.
    """
    return math.floor(time * frame_rate + 0.5)


def round_time(time: float) -> float:
    """Quantize a time to the precision written by export."""
    return float(f"{time:.{TIME_DECIMALS}f}")


def format_time(time: float) -> str:
    return f"{time:.{TIME_DECIMALS}f}"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
