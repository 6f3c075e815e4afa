"""
Catalog data model: descriptors, media items and the per-scan catalog.
"""

from __future__ import annotations

import base64
import logging
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional, Sequence

if TYPE_CHECKING:
    from enrichment.tracker import ResourceTracker, TrackedHandle
    from tags.store import TagStore


@dataclass(frozen=True)
class MediaDescriptor:
    """Raw record produced by an enumerator for one candidate video file."""

    name: str
    relative_path: str
    size_bytes: int
    modified_at: float
    mime_type: str
    source: Path


@dataclass(frozen=True)
class Thumbnail:
    """Encoded raster captured from a video frame."""

    data: bytes
    width: int
    height: int
    mime_type: str = "image/jpeg"

    def as_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class ContentHandle:
    """Transient lease on an item's content, owned by exactly one item."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<ContentHandle {self.path} ({state})>"


@dataclass(eq=False)
class MediaItem:
    """One discovered video plus its derived metadata and tags.

    ``duration`` and ``thumbnail`` are write-once: the ``record_*`` methods
    refuse a second write and never clear a value.
    """

    name: str
    relative_path: str
    size_bytes: int
    modified_at: float
    mime_type: str
    source: Path
    item_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    content: Optional["TrackedHandle"] = field(default=None, repr=False)
    duration: Optional[float] = None
    thumbnail: Optional[Thumbnail] = field(default=None, repr=False)
    tags: List[str] = field(default_factory=list)
    _write_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @classmethod
    def from_descriptor(cls, descriptor: MediaDescriptor) -> "MediaItem":
        return cls(
            name=descriptor.name,
            relative_path=descriptor.relative_path,
            size_bytes=descriptor.size_bytes,
            modified_at=descriptor.modified_at,
            mime_type=descriptor.mime_type,
            source=descriptor.source,
        )

    def record_duration(self, seconds: float) -> bool:
        with self._write_lock:
            if self.duration is not None:
                return False
            self.duration = float(seconds)
            return True

    def record_thumbnail(self, thumbnail: Thumbnail) -> bool:
        with self._write_lock:
            if self.thumbnail is not None:
                return False
            self.thumbnail = thumbnail
            return True


class Catalog(Sequence[MediaItem]):
    """Fixed-length list of items for a single scan."""

    def __init__(self, items: Iterable[MediaItem]) -> None:
        self._items: tuple[MediaItem, ...] = tuple(items)
        self._by_path: Dict[str, MediaItem] = {item.relative_path: item for item in self._items}
        if len(self._by_path) != len(self._items):
            raise ValueError("Catalog items must have unique relative paths")

    @classmethod
    def build(
        cls,
        descriptors: Iterable[MediaDescriptor],
        tracker: "ResourceTracker",
        tag_store: Optional["TagStore"] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "Catalog":
        """Create items from descriptors, leasing one content handle per item."""
        logger = logger or logging.getLogger("video_library")
        items: List[MediaItem] = []
        seen: set[str] = set()
        for descriptor in descriptors:
            if descriptor.relative_path in seen:
                logger.warning("Duplicate relative path skipped: %s", descriptor.relative_path)
                continue
            seen.add(descriptor.relative_path)
            item = MediaItem.from_descriptor(descriptor)
            item.content = tracker.acquire(ContentHandle(descriptor.source), kind="content")
            if tag_store is not None:
                item.tags = tag_store.tags_for(descriptor.relative_path)
            items.append(item)
        return cls(items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):  # type: ignore[override]
        return self._items[index]

    def __iter__(self) -> Iterator[MediaItem]:
        return iter(self._items)

    def get(self, relative_path: str) -> Optional[MediaItem]:
        return self._by_path.get(relative_path)

    def require(self, relative_path: str) -> MediaItem:
        item = self._by_path.get(relative_path)
        if item is None:
            raise KeyError(f"No catalog item for path: {relative_path}")
        return item
