"""
Utility helpers for the video library.
"""

from .logging_setup import resolve_level, setup_logging
from .progress import ProgressReporter, ProgressSnapshot
from .resource_monitor import ResourceMonitor

__all__ = [
    "resolve_level",
    "setup_logging",
    "ProgressReporter",
    "ProgressSnapshot",
    "ResourceMonitor",
]
