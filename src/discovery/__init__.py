"""
Discovery package: enumerators that yield media descriptors.
"""

from .scanner import (
    VIDEO_EXTENSIONS,
    DirectoryEnumerator,
    EnumerationError,
    SelectionEnumerator,
    build_descriptor,
    guess_mime_type,
    is_video_name,
)

__all__ = [
    "VIDEO_EXTENSIONS",
    "DirectoryEnumerator",
    "EnumerationError",
    "SelectionEnumerator",
    "build_descriptor",
    "guess_mime_type",
    "is_video_name",
]
