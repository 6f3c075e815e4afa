"""
Catalog package: media items, descriptors and display formatting.
"""

from .formatting import format_bytes, format_duration
from .models import Catalog, ContentHandle, MediaDescriptor, MediaItem, Thumbnail

__all__ = [
    "Catalog",
    "ContentHandle",
    "MediaDescriptor",
    "MediaItem",
    "Thumbnail",
    "format_bytes",
    "format_duration",
]
