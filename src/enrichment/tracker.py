"""
Registry of transient per-item resources.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional


class ResourceLeakError(AssertionError):
    """Raised when handles remain registered after they should be released."""


@dataclass(frozen=True)
class TrackedHandle:
    """Registry entry for one acquired resource."""

    handle_id: int
    kind: str
    resource: Any


class ResourceTracker:
    """Track acquired resources so every one of them is closed exactly once.

    Resources only need a ``close()`` method. Releasing a handle that is no
    longer registered is a no-op.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("video_library")
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._registry: Dict[int, TrackedHandle] = {}

    def acquire(self, resource: Any, kind: str = "content") -> TrackedHandle:
        with self._lock:
            handle = TrackedHandle(handle_id=next(self._ids), kind=kind, resource=resource)
            self._registry[handle.handle_id] = handle
        return handle

    def release(self, handle: Optional[TrackedHandle]) -> bool:
        if handle is None:
            return False
        with self._lock:
            entry = self._registry.pop(handle.handle_id, None)
        if entry is None:
            return False
        self._close(entry)
        return True

    def release_all(self) -> int:
        """Close every outstanding handle and return how many were released."""
        with self._lock:
            entries = list(self._registry.values())
            self._registry.clear()
        for entry in entries:
            self._close(entry)
        if entries:
            self.logger.debug("Released %s outstanding handles", len(entries))
        self.assert_released()
        return len(entries)

    def outstanding(self, kind: Optional[str] = None) -> int:
        with self._lock:
            if kind is None:
                return len(self._registry)
            return sum(1 for entry in self._registry.values() if entry.kind == kind)

    def assert_released(self, *kinds: str) -> None:
        """Raise ResourceLeakError if handles of the given kinds (or any) remain."""
        with self._lock:
            leaked = [
                entry
                for entry in self._registry.values()
                if not kinds or entry.kind in kinds
            ]
        if leaked:
            summary = ", ".join(f"{entry.kind}#{entry.handle_id}" for entry in leaked[:10])
            raise ResourceLeakError(f"{len(leaked)} handles still registered: {summary}")

    def _close(self, entry: TrackedHandle) -> None:
        try:
            entry.resource.close()
        except OSError as exc:
            self.logger.warning("Failed to close %s handle #%s: %s", entry.kind, entry.handle_id, exc)
