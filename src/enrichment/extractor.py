"""
Per-item duration and thumbnail extraction with a hard deadline.
"""

from __future__ import annotations

import io
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from PIL import Image

from catalog.models import MediaItem, Thumbnail
from config import AppConfig
from enrichment.backend import DecodeError, FFmpegBackend
from enrichment.tracker import ResourceTracker, TrackedHandle

DEFAULT_TIMEOUT_MS = 4000
DEFAULT_THUMBNAIL_MAX_WIDTH = 640
DEFAULT_THUMBNAIL_QUALITY = 70
FALLBACK_FRAME_SIZE = (320, 180)

SEEK_FRACTION = 0.1
SEEK_MIN_SECONDS = 0.1
SEEK_MAX_SECONDS = 1.0

OUTCOME_COMPLETE = "complete"
OUTCOME_TIMEOUT = "timeout"
OUTCOME_ERROR = "error"


def seek_target(duration: Optional[float]) -> float:
    """Pick the frame time used for the thumbnail.

    Skips likely-black leading frames while keeping the seek short on long
    videos. An unknown duration is treated as one second.
    """
    base = duration if duration is not None and math.isfinite(duration) and duration > 0 else 1.0
    return min(max(SEEK_MIN_SECONDS, base * SEEK_FRACTION), SEEK_MAX_SECONDS)


def render_thumbnail(
    frame: Image.Image,
    max_width: int = DEFAULT_THUMBNAIL_MAX_WIDTH,
    quality: int = DEFAULT_THUMBNAIL_QUALITY,
) -> Thumbnail:
    """Downscale a frame to ``max_width`` and encode it as JPEG."""
    width, height = frame.size
    if not width or not height:
        width, height = FALLBACK_FRAME_SIZE
    scale = min(1.0, max_width / width)
    target = (max(1, round(width * scale)), max(1, round(height * scale)))
    image = frame.convert("RGB")
    if image.size != target:
        image = image.resize(target, Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return Thumbnail(data=buffer.getvalue(), width=target[0], height=target[1])


class FinalizeGate:
    """Once-only completion gate shared by the decode path and the deadline.

    The first caller of ``finalize`` runs the side effects; later callers are
    no-ops. Writes routed through ``guarded`` are dropped once the gate closed.
    """

    def __init__(self, on_finalize: Optional[Callable[[str], None]] = None) -> None:
        self._on_finalize = on_finalize
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._done = False
        self.outcome: Optional[str] = None
        self.error: Optional[str] = None

    @property
    def done(self) -> bool:
        with self._lock:
            return self._done

    def guarded(self, action: Callable[..., Any], *args: Any) -> bool:
        with self._lock:
            if self._done:
                return False
            action(*args)
            return True

    def finalize(self, outcome: str, error: Optional[str] = None) -> bool:
        with self._lock:
            if self._done:
                return False
            self._done = True
            self.outcome = outcome
            self.error = error
        try:
            if self._on_finalize is not None:
                self._on_finalize(outcome)
        finally:
            self._event.set()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of enriching one item."""

    relative_path: str
    outcome: str
    duration: Optional[float]
    has_thumbnail: bool
    error: Optional[str]
    elapsed_seconds: float


class Extractor:
    """Derive duration and thumbnail for one item under a deadline."""

    def __init__(
        self,
        tracker: ResourceTracker,
        backend: Optional[Any] = None,
        config: Optional[AppConfig] = None,
        logger: Optional[logging.Logger] = None,
        timeout_ms: Optional[float] = None,
        thumbnail_max_width: Optional[int] = None,
        thumbnail_quality: Optional[int] = None,
    ) -> None:
        self.tracker = tracker
        self.backend = backend or FFmpegBackend(config)
        self.logger = logger or logging.getLogger("video_library.enrichment")

        def setting(value: Any, key: str, default: Any) -> Any:
            if value is not None:
                return value
            if config is None:
                return default
            return config.get("enrichment", key, default=default)

        self.timeout_seconds = float(setting(timeout_ms, "timeout_ms", DEFAULT_TIMEOUT_MS)) / 1000.0
        self.thumbnail_max_width = int(
            setting(thumbnail_max_width, "thumbnail_max_width", DEFAULT_THUMBNAIL_MAX_WIDTH)
        )
        self.thumbnail_quality = int(
            setting(thumbnail_quality, "thumbnail_quality", DEFAULT_THUMBNAIL_QUALITY)
        )

    def extract(self, item: MediaItem) -> ExtractionResult:
        """Enrich ``item`` in place and return once it has been finalized."""
        started = time.monotonic()
        decode_handles: List[TrackedHandle] = []

        def release_resources(outcome: str) -> None:
            for handle in decode_handles:
                self.tracker.release(handle)
            self.tracker.release(item.content)
            item.content = None

        gate = FinalizeGate(release_resources)
        if item.content is None:
            gate.finalize(OUTCOME_ERROR, "content handle already released")
            return self._result(item, gate, started)

        try:
            session = self.backend.open(item.content.resource)
        except Exception as exc:
            gate.finalize(OUTCOME_ERROR, str(exc))
            self.logger.warning("Could not open %s: %s", item.relative_path, exc)
            return self._result(item, gate, started)
        decode_handles.append(self.tracker.acquire(session, kind="decode"))

        worker = threading.Thread(
            target=self._decode,
            args=(item, session, gate),
            name=f"decode-{item.item_id[:8]}",
            daemon=True,
        )
        worker.start()
        if not gate.wait(self.timeout_seconds):
            if gate.finalize(OUTCOME_TIMEOUT):
                self.logger.warning(
                    "Timed out after %.1fs: %s (duration=%s thumbnail=%s)",
                    self.timeout_seconds,
                    item.relative_path,
                    item.duration,
                    item.thumbnail is not None,
                )
        gate.wait()
        return self._result(item, gate, started)

    def _decode(self, item: MediaItem, session: Any, gate: FinalizeGate) -> None:
        try:
            duration = session.load_metadata()
            if duration is not None and math.isfinite(duration) and duration > 0:
                gate.guarded(item.record_duration, duration)
            session.seek(seek_target(duration))
            frame = session.capture_frame()
            thumbnail = render_thumbnail(frame, self.thumbnail_max_width, self.thumbnail_quality)
            gate.guarded(item.record_thumbnail, thumbnail)
        except Exception as exc:
            if gate.finalize(OUTCOME_ERROR, str(exc)):
                level = logging.INFO if isinstance(exc, DecodeError) else logging.WARNING
                self.logger.log(level, "Decode failed for %s: %s", item.relative_path, exc)
            return
        if gate.finalize(OUTCOME_COMPLETE):
            self.logger.info("Enriched %s (duration=%.2fs)", item.relative_path, item.duration or 0.0)

    def _result(self, item: MediaItem, gate: FinalizeGate, started: float) -> ExtractionResult:
        return ExtractionResult(
            relative_path=item.relative_path,
            outcome=gate.outcome or OUTCOME_ERROR,
            duration=item.duration,
            has_thumbnail=item.thumbnail is not None,
            error=gate.error,
            elapsed_seconds=time.monotonic() - started,
        )
