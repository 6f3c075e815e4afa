"""
FFmpeg-based decode sessions used to probe durations and grab frames.
"""

from __future__ import annotations

import io
import json
import logging
import math
import shutil
import subprocess
import threading
from pathlib import Path
from typing import List, Optional

from PIL import Image

from catalog.models import ContentHandle
from config import AppConfig


class DecodeError(RuntimeError):
    """Raised when a decode session cannot produce metadata or a frame."""


def ffmpeg_available(ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe") -> bool:
    """Return True when both ffmpeg and ffprobe are available."""
    return shutil.which(ffmpeg_path) is not None and shutil.which(ffprobe_path) is not None


class FFmpegDecodeSession:
    """Decode session over one content handle.

    Each step runs a short-lived subprocess. ``close()`` kills whichever
    subprocess is running and makes every later call raise DecodeError.
    """

    def __init__(self, content: ContentHandle, ffmpeg_path: str, ffprobe_path: str) -> None:
        self.content = content
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.position = 0.0
        self._lock = threading.Lock()
        self._closed = False
        self._process: Optional[subprocess.Popen] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def load_metadata(self) -> Optional[float]:
        """Return the container duration in seconds, or None when unknown."""
        stdout = self._run(
            [
                self.ffprobe_path,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "json",
                str(self.content.path),
            ]
        )
        try:
            parsed = json.loads(stdout.decode("utf-8", errors="replace") or "{}")
        except json.JSONDecodeError as exc:
            raise DecodeError(f"invalid ffprobe output: {exc}") from exc
        format_section = parsed.get("format") if isinstance(parsed.get("format"), dict) else {}
        try:
            duration = float(format_section.get("duration"))
        except (TypeError, ValueError):
            return None
        if not math.isfinite(duration) or duration <= 0:
            return None
        return duration

    def seek(self, seconds: float) -> None:
        self._ensure_open()
        self.position = max(0.0, float(seconds))

    def capture_frame(self) -> Image.Image:
        """Decode the frame at the current position."""
        stdout = self._run(
            [
                self.ffmpeg_path,
                "-v",
                "error",
                "-ss",
                f"{self.position:.3f}",
                "-i",
                str(self.content.path),
                "-frames:v",
                "1",
                "-f",
                "image2pipe",
                "-vcodec",
                "png",
                "-",
            ]
        )
        if not stdout:
            raise DecodeError(f"no frame decoded at {self.position:.3f}s")
        try:
            image = Image.open(io.BytesIO(stdout))
            image.load()
        except OSError as exc:
            raise DecodeError(f"unreadable frame: {exc}") from exc
        return image

    def close(self) -> None:
        with self._lock:
            self._closed = True
            process = self._process
        if process is not None and process.poll() is None:
            process.kill()

    def _ensure_open(self) -> None:
        if self._closed:
            raise DecodeError("decode session closed")
        if self.content.closed:
            raise DecodeError("content handle released")

    def _run(self, cmd: List[str]) -> bytes:
        with self._lock:
            self._ensure_open()
            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    stdin=subprocess.DEVNULL,
                )
            except FileNotFoundError as exc:
                raise DecodeError(f"{cmd[0]} not found") from exc
            self._process = process
        try:
            stdout, stderr = process.communicate()
        finally:
            with self._lock:
                self._process = None
        if self._closed:
            raise DecodeError("decode session closed")
        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise DecodeError(message or f"{Path(cmd[0]).name} exited with {process.returncode}")
        return stdout


class FFmpegBackend:
    """Factory for FFmpeg decode sessions."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        ffmpeg_path: Optional[str] = None,
        ffprobe_path: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger("video_library")
        configured_ffmpeg = config.get("enrichment", "ffmpeg_path") if config is not None else None
        configured_ffprobe = config.get("enrichment", "ffprobe_path") if config is not None else None
        self.ffmpeg_path = str(ffmpeg_path or configured_ffmpeg or "ffmpeg")
        self.ffprobe_path = str(ffprobe_path or configured_ffprobe or "ffprobe")

    def available(self) -> bool:
        return ffmpeg_available(self.ffmpeg_path, self.ffprobe_path)

    def open(self, content: ContentHandle) -> FFmpegDecodeSession:
        if content.closed:
            raise DecodeError(f"content handle released: {content.path}")
        return FFmpegDecodeSession(content, self.ffmpeg_path, self.ffprobe_path)
