"""
Playback streams over catalog items.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from catalog.models import MediaItem
from enrichment.tracker import ResourceTracker, TrackedHandle

DEFAULT_CHUNK_SIZE = 1024 * 1024


class PlaybackStream:
    """Readable stream over an item's file, released through the tracker."""

    def __init__(self, item: MediaItem, tracker: ResourceTracker) -> None:
        self.item = item
        self.tracker = tracker
        self.path: Path = item.source
        self._file: BinaryIO = self.path.open("rb")
        self._handle: Optional[TrackedHandle] = tracker.acquire(self._file, kind="playback")

    @property
    def closed(self) -> bool:
        return self._handle is None or self._file.closed

    @property
    def mime_type(self) -> str:
        return self.item.mime_type

    def read(self, size: int = -1) -> bytes:
        return self._file.read(size)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._file.seek(offset, whence)

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        while True:
            chunk = self._file.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        handle, self._handle = self._handle, None
        self.tracker.release(handle)

    def __enter__(self) -> "PlaybackStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_playback(item: MediaItem, tracker: ResourceTracker) -> PlaybackStream:
    """Open a stream for ``item``; the caller closes it when playback ends."""
    return PlaybackStream(item, tracker)
