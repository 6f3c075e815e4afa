"""
Script entry point for the video library command line.
"""

import faulthandler
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path

from orchestrator.main import main


def _enable_crash_diagnostics(logs_dir: Path) -> None:
    logs_dir.mkdir(parents=True, exist_ok=True)
    crash_log = logs_dir / f"crash_traceback_{datetime.now(timezone.utc).strftime('%Y%m%d')}.log"
    crash_stream = crash_log.open("a", encoding="utf-8")
    faulthandler.enable(file=crash_stream, all_threads=True)

    def _hook(exc_type, exc, tb):
        with crash_log.open("a", encoding="utf-8") as handle:
            handle.write(f"\n{datetime.now(timezone.utc).isoformat()} Unhandled exception\n")
            traceback.print_exception(exc_type, exc, tb, file=handle)
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _hook


if __name__ == "__main__":
    _enable_crash_diagnostics(Path("logs"))
    raise SystemExit(main())
