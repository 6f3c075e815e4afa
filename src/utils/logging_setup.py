"""
Logging configuration for the video library.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Union


def resolve_level(value: Union[int, str, None], default: int = logging.INFO) -> int:
    """Map a config value such as ``"warning"`` or ``30`` to a logging level."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    log_dir: Path,
    level: int = logging.INFO,
    enrichment_level: int = logging.INFO,
) -> Dict[str, logging.Logger]:
    """Initialize loggers and return a mapping of named loggers.

    ``enrichment_level`` filters the per-item outcome log; it is applied on
    every call so a session can tighten or relax it after the first setup.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    date_stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    library_log = log_dir / f"library_log_{date_stamp}.log"
    error_log = log_dir / f"error_log_{date_stamp}.log"
    performance_log = log_dir / f"performance_log_{date_stamp}.log"
    enrichment_log = log_dir / f"enrichment_log_{date_stamp}.log"

    base_logger = logging.getLogger("video_library")
    if not base_logger.handlers:
        base_logger.setLevel(level)
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        base_logger.addHandler(stream_handler)

        file_handler = logging.FileHandler(library_log, encoding="utf-8")
        file_handler.setFormatter(formatter)
        base_logger.addHandler(file_handler)

        error_handler = logging.FileHandler(error_log, encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        base_logger.addHandler(error_handler)

    performance_logger = logging.getLogger("video_library.performance")
    if not performance_logger.handlers:
        performance_logger.setLevel(logging.INFO)
        perf_handler = logging.FileHandler(performance_log, encoding="utf-8")
        perf_handler.setFormatter(formatter)
        performance_logger.addHandler(perf_handler)
        performance_logger.propagate = False

    # Per-item outcomes are noisy; keep them out of the console.
    enrichment_logger = logging.getLogger("video_library.enrichment")
    if not enrichment_logger.handlers:
        item_handler = logging.FileHandler(enrichment_log, encoding="utf-8")
        item_handler.setFormatter(formatter)
        enrichment_logger.addHandler(item_handler)
        enrichment_logger.propagate = False
    enrichment_logger.setLevel(enrichment_level)

    return {
        "main": base_logger,
        "performance": performance_logger,
        "enrichment": enrichment_logger,
    }
