"""
Progress reporting for enrichment passes.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of an enrichment pass."""

    completed: int
    total: int
    elapsed_seconds: float

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return self.completed / self.total


class ProgressReporter:
    """Progress callback that logs periodic summaries from a background thread.

    Instances are callable with ``(completed, total)`` and can be handed to the
    enrichment scheduler directly.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        interval_seconds: float = 5.0,
        enabled: bool = True,
    ) -> None:
        self.logger = logger or logging.getLogger("video_library.performance")
        self.interval_seconds = max(float(interval_seconds), 0.5)
        self.enabled = enabled
        self._lock = threading.Lock()
        self._completed = 0
        self._total = 0
        self._started_at = time.monotonic()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __call__(self, completed: int, total: int) -> None:
        with self._lock:
            if completed == 0:
                self._started_at = time.monotonic()
            self._completed = completed
            self._total = total

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                completed=self._completed,
                total=self._total,
                elapsed_seconds=time.monotonic() - self._started_at,
            )

    def start(self) -> None:
        """Start background reporting if enabled."""
        if not self.enabled or self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="progress-reporter", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop background reporting and log a final snapshot."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=self.interval_seconds + 5)
        self._thread = None
        self._log_snapshot(self.snapshot())

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self._log_snapshot(self.snapshot())

    def _log_snapshot(self, snapshot: ProgressSnapshot) -> None:
        self.logger.info(
            "Processing %s/%s (%.0f%%) elapsed=%.1fs",
            snapshot.completed,
            snapshot.total,
            snapshot.fraction * 100,
            snapshot.elapsed_seconds,
        )
