import io
import threading
from pathlib import Path
from typing import Optional

from PIL import Image

from catalog.models import ContentHandle, MediaItem
from enrichment.backend import DecodeError
from enrichment.extractor import Extractor, FinalizeGate, render_thumbnail, seek_target
from enrichment.tracker import ResourceTracker


class FakeSession:
    def __init__(
        self,
        duration: Optional[float] = 12.0,
        frame_size: tuple[int, int] = (1280, 720),
        block_capture: bool = False,
        fail_metadata: bool = False,
    ) -> None:
        self.duration = duration
        self.frame_size = frame_size
        self.block_capture = block_capture
        self.fail_metadata = fail_metadata
        self.seek_to: Optional[float] = None
        self.close_count = 0
        self.unblock = threading.Event()
        self.capture_returned = threading.Event()

    def load_metadata(self) -> Optional[float]:
        if self.fail_metadata:
            raise DecodeError("moov atom not found")
        return self.duration

    def seek(self, seconds: float) -> None:
        self.seek_to = seconds

    def capture_frame(self) -> Image.Image:
        if self.block_capture:
            self.unblock.wait(timeout=5)
        try:
            return Image.new("RGB", self.frame_size, "navy")
        finally:
            self.capture_returned.set()

    def close(self) -> None:
        self.close_count += 1
        self.unblock.set()


class FakeBackend:
    def __init__(self, session: Optional[FakeSession] = None, fail_open: bool = False) -> None:
        self.session = session or FakeSession()
        self.fail_open = fail_open
        self.opened: list[ContentHandle] = []

    def open(self, content: ContentHandle) -> FakeSession:
        if self.fail_open:
            raise DecodeError("cannot open")
        self.opened.append(content)
        return self.session


def make_item(tmp_path: Path, tracker: ResourceTracker, name: str = "clip.mp4") -> MediaItem:
    source = tmp_path / name
    source.write_bytes(b"\x00" * 16)
    item = MediaItem(
        name=name,
        relative_path=name,
        size_bytes=16,
        modified_at=0.0,
        mime_type="video/mp4",
        source=source,
    )
    item.content = tracker.acquire(ContentHandle(source), kind="content")
    return item


def test_seek_target_clamps() -> None:
    assert seek_target(None) == 0.1
    assert seek_target(0.5) == 0.1
    assert seek_target(5.0) == 0.5
    assert seek_target(3600.0) == 1.0
    assert seek_target(float("nan")) == 0.1


def test_render_thumbnail_scales_to_max_width() -> None:
    thumbnail = render_thumbnail(Image.new("RGB", (1920, 1080), "red"))

    assert (thumbnail.width, thumbnail.height) == (640, 360)
    with Image.open(io.BytesIO(thumbnail.data)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (640, 360)
    assert thumbnail.as_data_url().startswith("data:image/jpeg;base64,")


def test_render_thumbnail_keeps_small_frames_and_minimum_size() -> None:
    small = render_thumbnail(Image.new("RGB", (320, 240)))
    sliver = render_thumbnail(Image.new("RGB", (5000, 2)))

    assert (small.width, small.height) == (320, 240)
    assert (sliver.width, sliver.height) == (640, 1)


def test_extract_records_duration_and_thumbnail(tmp_path: Path) -> None:
    tracker = ResourceTracker()
    item = make_item(tmp_path, tracker)
    backend = FakeBackend()

    result = Extractor(tracker, backend=backend).extract(item)

    assert result.outcome == "complete"
    assert item.duration == 12.0
    assert item.thumbnail is not None
    assert item.thumbnail.width == 640
    assert backend.session.seek_to == 1.0
    assert backend.session.close_count == 1
    assert item.content is None
    assert tracker.outstanding() == 0


def test_extract_timeout_keeps_partial_result(tmp_path: Path) -> None:
    tracker = ResourceTracker()
    item = make_item(tmp_path, tracker)
    session = FakeSession(duration=42.0, block_capture=True)

    result = Extractor(tracker, backend=FakeBackend(session), timeout_ms=100).extract(item)

    assert result.outcome == "timeout"
    assert result.duration == 42.0
    assert result.has_thumbnail is False
    assert tracker.outstanding() == 0
    assert session.close_count == 1

    # The decode path finishes after the deadline; its write must be dropped.
    assert session.capture_returned.wait(timeout=5)
    assert item.thumbnail is None


def test_extract_decode_error_is_not_raised(tmp_path: Path) -> None:
    tracker = ResourceTracker()
    item = make_item(tmp_path, tracker)
    session = FakeSession(fail_metadata=True)

    result = Extractor(tracker, backend=FakeBackend(session)).extract(item)

    assert result.outcome == "error"
    assert "moov" in (result.error or "")
    assert item.duration is None
    assert item.thumbnail is None
    assert tracker.outstanding() == 0


def test_extract_open_failure_releases_content(tmp_path: Path) -> None:
    tracker = ResourceTracker()
    item = make_item(tmp_path, tracker)

    result = Extractor(tracker, backend=FakeBackend(fail_open=True)).extract(item)

    assert result.outcome == "error"
    assert item.content is None
    assert tracker.outstanding() == 0


def test_extract_without_duration_uses_short_seek(tmp_path: Path) -> None:
    tracker = ResourceTracker()
    item = make_item(tmp_path, tracker)
    session = FakeSession(duration=None)

    result = Extractor(tracker, backend=FakeBackend(session)).extract(item)

    assert result.outcome == "complete"
    assert item.duration is None
    assert item.thumbnail is not None
    assert session.seek_to == 0.1


def test_finalize_gate_runs_once_under_race() -> None:
    calls: list[str] = []
    gate = FinalizeGate(calls.append)
    barrier = threading.Barrier(16)
    wins: list[bool] = []
    wins_lock = threading.Lock()

    def contender(index: int) -> None:
        barrier.wait()
        won = gate.finalize("timeout" if index % 2 else "complete")
        with wins_lock:
            wins.append(won)

    threads = [threading.Thread(target=contender, args=(index,)) for index in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert wins.count(True) == 1
    assert gate.outcome == calls[0]
    assert gate.wait(0)


def test_finalize_gate_suppresses_late_writes() -> None:
    gate = FinalizeGate()
    writes: list[int] = []

    assert gate.guarded(writes.append, 1) is True
    gate.finalize("complete")
    assert gate.guarded(writes.append, 2) is False
    assert writes == [1]
    assert gate.done


def test_media_item_fields_are_write_once(tmp_path: Path) -> None:
    item = make_item(tmp_path, ResourceTracker())

    assert item.record_duration(10.0) is True
    assert item.record_duration(20.0) is False
    assert item.duration == 10.0
