import logging
import time
from pathlib import Path
from types import SimpleNamespace

import pytest

from config import AppConfig
from utils import ProgressReporter, ResourceMonitor, resolve_level, setup_logging


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakePsutil:
    def __init__(self, cpu_readings: list[float], ram_percent: float = 10.0) -> None:
        self.cpu_readings = list(cpu_readings)
        self.ram_percent = ram_percent
        self.cpu_calls = 0

    def cpu_percent(self, interval=None) -> float:
        if interval is None:
            return 0.0
        self.cpu_calls += 1
        if len(self.cpu_readings) > 1:
            return self.cpu_readings.pop(0)
        return self.cpu_readings[0]

    def virtual_memory(self) -> SimpleNamespace:
        return SimpleNamespace(percent=self.ram_percent)


def install_fakes(monkeypatch: pytest.MonkeyPatch, fake_psutil: FakePsutil) -> FakeClock:
    clock = FakeClock()
    monkeypatch.setattr("utils.resource_monitor.psutil", fake_psutil)
    monkeypatch.setattr("utils.resource_monitor.time", clock)
    return clock


def test_throttle_returns_immediately_under_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakePsutil([10.0])
    clock = install_fakes(monkeypatch, fake)

    ResourceMonitor(max_cpu_percent=50).throttle()

    assert fake.cpu_calls == 1
    assert clock.sleeps == []


def test_throttle_sleeps_until_usage_drops(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakePsutil([90.0, 90.0, 20.0])
    clock = install_fakes(monkeypatch, fake)

    ResourceMonitor(max_cpu_percent=50, sleep_seconds=0.5).throttle()

    assert clock.sleeps == [0.5, 0.5]


def test_throttle_gives_up_after_max_seconds(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakePsutil([10.0], ram_percent=95.0)
    clock = install_fakes(monkeypatch, fake)

    ResourceMonitor(max_ram_percent=80, sleep_seconds=0.5, max_throttle_seconds=2).throttle()

    assert clock.sleeps == [0.5, 0.5, 0.5, 0.5]


def test_throttle_checks_at_most_once_per_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakePsutil([10.0])
    install_fakes(monkeypatch, fake)
    monitor = ResourceMonitor(max_cpu_percent=50, min_check_interval_seconds=0.5)

    monitor.throttle()
    monitor.throttle()

    assert fake.cpu_calls == 1


def test_disabled_monitor_never_samples(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakePsutil([99.0])
    clock = install_fakes(monkeypatch, fake)
    monitor = ResourceMonitor.from_config(AppConfig(root_dir=Path("."), raw={}))

    monitor.throttle()

    assert monitor.enabled is False
    assert fake.cpu_calls == 0
    assert clock.sleeps == []


def test_progress_reporter_logs_final_snapshot_on_stop(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.progress")
    caplog.set_level(logging.INFO, logger="tests.progress")
    reporter = ProgressReporter(logger=logger, interval_seconds=60)

    reporter.start()
    reporter(0, 4)
    reporter(4, 4)
    reporter.stop()

    assert reporter.snapshot().fraction == 1.0
    assert caplog.messages[-1].startswith("Processing 4/4 (100%)")


def test_progress_reporter_logs_while_running(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.progress")
    caplog.set_level(logging.INFO, logger="tests.progress")
    reporter = ProgressReporter(logger=logger, interval_seconds=0.5)

    reporter.start()
    reporter(0, 4)
    reporter(1, 4)
    deadline = time.monotonic() + 5
    while not caplog.messages and time.monotonic() < deadline:
        time.sleep(0.05)
    reporter.stop()

    assert caplog.messages[0].startswith("Processing 1/4 (25%)")


def test_disabled_progress_reporter_stays_silent(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.progress")
    caplog.set_level(logging.INFO, logger="tests.progress")
    reporter = ProgressReporter(logger=logger, enabled=False)

    reporter.start()
    reporter(2, 2)
    reporter.stop()

    assert caplog.messages == []
    assert reporter.snapshot().completed == 2


def test_resolve_level_accepts_names_and_numbers() -> None:
    assert resolve_level("warning") == logging.WARNING
    assert resolve_level(" DEBUG ") == logging.DEBUG
    assert resolve_level(40) == logging.ERROR
    assert resolve_level(None) == logging.INFO
    assert resolve_level("chatty", default=logging.WARNING) == logging.WARNING


def test_setup_logging_applies_enrichment_level(tmp_path: Path) -> None:
    loggers = setup_logging(tmp_path / "logs", enrichment_level=logging.WARNING)
    try:
        assert loggers["enrichment"].level == logging.WARNING
        assert loggers["enrichment"].propagate is False
        assert (tmp_path / "logs").is_dir()
    finally:
        loggers["enrichment"].setLevel(logging.INFO)
