"""
Human-readable formatting for sizes and durations.
"""

from __future__ import annotations

import math
from typing import Optional

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(size: Optional[float]) -> str:
    if size is None or not math.isfinite(size):
        return "?"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(_UNITS) - 1:
        value /= 1024
        index += 1
    decimals = 1 if value < 10 and index else 0
    return f"{value:.{decimals}f} {_UNITS[index]}"


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as ``m:ss`` or ``h:mm:ss``."""
    if seconds is None or not math.isfinite(seconds):
        return "—"
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
