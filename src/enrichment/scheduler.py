"""
Fixed-width worker pool that enriches every item of a catalog.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from catalog.models import MediaItem
from config import AppConfig
from enrichment.extractor import OUTCOME_ERROR, OUTCOME_TIMEOUT, ExtractionResult, Extractor
from utils import ResourceMonitor

DEFAULT_WORKERS = 3

ProgressCallback = Callable[[int, int], None]


@dataclass
class EnrichmentStats:
    """Summary statistics for an enrichment pass."""

    total: int
    completed: int
    timed_out: int
    failed: int
    elapsed_seconds: float


class ClaimCursor:
    """Shared fetch-and-increment cursor over item indices."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self._next = 0
        self._lock = threading.Lock()

    def claim(self) -> Optional[int]:
        with self._lock:
            if self._next >= self.limit:
                return None
            index = self._next
            self._next += 1
            return index


class EnrichmentScheduler:
    """Run the extractor over a catalog with ``workers`` concurrent workers."""

    def __init__(
        self,
        extractor: Extractor,
        config: Optional[AppConfig] = None,
        logger: Optional[logging.Logger] = None,
        workers: Optional[int] = None,
        monitor: Optional[ResourceMonitor] = None,
    ) -> None:
        self.extractor = extractor
        self.logger = logger or logging.getLogger("video_library")
        if workers is None:
            workers = (
                int(config.get("enrichment", "workers", default=DEFAULT_WORKERS))
                if config is not None
                else DEFAULT_WORKERS
            )
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.workers = workers
        self.monitor = monitor

    def run(
        self,
        items: Sequence[MediaItem],
        on_progress: Optional[ProgressCallback] = None,
    ) -> EnrichmentStats:
        """Enrich every item exactly once and report ``(completed, total)``."""
        total = len(items)
        started = time.monotonic()
        cursor = ClaimCursor(total)
        progress_lock = threading.Lock()
        counters = {"completed": 0, OUTCOME_TIMEOUT: 0, OUTCOME_ERROR: 0}

        def record(result: ExtractionResult) -> None:
            # Callbacks run under the lock so observers see 1..N in order.
            with progress_lock:
                counters["completed"] += 1
                if result.outcome in (OUTCOME_TIMEOUT, OUTCOME_ERROR):
                    counters[result.outcome] += 1
                if on_progress is not None:
                    on_progress(counters["completed"], total)

        def work() -> None:
            while True:
                if self.monitor is not None:
                    self.monitor.throttle()
                index = cursor.claim()
                if index is None:
                    return
                record(self.extractor.extract(items[index]))

        if on_progress is not None:
            on_progress(0, total)
        if total:
            width = min(self.workers, total)
            self.logger.info("Enriching %s items with %s workers", total, width)
            with ThreadPoolExecutor(max_workers=width, thread_name_prefix="enrich") as executor:
                futures = [executor.submit(work) for _ in range(width)]
                for future in futures:
                    future.result()

        self.extractor.tracker.assert_released("content", "decode")
        stats = EnrichmentStats(
            total=total,
            completed=counters["completed"],
            timed_out=counters[OUTCOME_TIMEOUT],
            failed=counters[OUTCOME_ERROR],
            elapsed_seconds=time.monotonic() - started,
        )
        self.logger.info(
            "Enrichment finished. Items=%s TimedOut=%s Failed=%s Elapsed=%.1fs",
            stats.completed,
            stats.timed_out,
            stats.failed,
            stats.elapsed_seconds,
        )
        return stats
