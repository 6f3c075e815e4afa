"""
Resource monitoring and throttling helpers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

import psutil

from config import AppConfig


@dataclass
class ResourceMonitor:
    """Throttle enrichment workers when resource limits are exceeded.

    Limits of zero disable the corresponding check.
    """

    max_cpu_percent: float = 0.0
    max_ram_percent: float = 0.0
    sleep_seconds: float = 0.5
    max_throttle_seconds: float = 15.0
    min_check_interval_seconds: float = 0.5
    _last_check: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.enabled:
            psutil.cpu_percent(interval=None)

    @classmethod
    def from_config(cls, config: Optional[AppConfig]) -> "ResourceMonitor":
        if config is None:
            return cls()
        return cls(
            max_cpu_percent=float(config.get("resource_limits", "max_cpu_percent", default=0)),
            max_ram_percent=float(config.get("resource_limits", "max_ram_percent", default=0)),
            max_throttle_seconds=float(
                config.get("resource_limits", "max_throttle_seconds", default=15)
            ),
            min_check_interval_seconds=float(
                config.get("resource_limits", "min_check_interval_seconds", default=0.5)
            ),
        )

    @property
    def enabled(self) -> bool:
        return self.max_cpu_percent > 0 or self.max_ram_percent > 0

    def throttle(self) -> None:
        """Sleep while CPU or RAM usage exceeds thresholds."""
        if not self.enabled:
            return
        now = time.monotonic()
        if (now - self._last_check) < self.min_check_interval_seconds:
            return
        self._last_check = now
        start_time = time.monotonic()
        while True:
            cpu = psutil.cpu_percent(interval=0.1)
            ram = psutil.virtual_memory().percent
            cpu_over = self.max_cpu_percent > 0 and cpu > self.max_cpu_percent
            ram_over = self.max_ram_percent > 0 and ram > self.max_ram_percent
            if not (cpu_over or ram_over):
                return
            if (time.monotonic() - start_time) >= self.max_throttle_seconds:
                return
            time.sleep(self.sleep_seconds)
