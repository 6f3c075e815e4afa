"""
Library session orchestration and command line entry point.
"""

from __future__ import annotations

import argparse
import json
import locale
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence

from catalog import Catalog, MediaItem, format_bytes, format_duration
from config import AppConfig, ensure_directories
from discovery import DirectoryEnumerator, EnumerationError, SelectionEnumerator
from enrichment import EnrichmentScheduler, EnrichmentStats, Extractor, FFmpegBackend, ResourceTracker
from playback import PlaybackStream, open_playback
from query import SORT_KEYS, QueryEngine, SortSpec
from tags import TagStore, add_tag, remove_tag
from utils import ProgressReporter, ResourceMonitor, resolve_level, setup_logging


class LibrarySession:
    """Own the catalog of one library session and everything that touches it.

    A rescan releases every handle of the previous pass before a new catalog
    is built; the previous catalog is then discarded.
    """

    def __init__(
        self,
        config: AppConfig,
        backend: Optional[Any] = None,
        workers: Optional[int] = None,
        timeout_ms: Optional[float] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        self.config = config
        self.loggers = setup_logging(
            config.resolve_path("paths", "logs", default="logs"),
            enrichment_level=resolve_level(config.get("logging", "enrichment_level")),
        )
        self.logger = self.loggers["main"]
        self.tracker = ResourceTracker(logger=self.logger)
        self.tag_store = TagStore.from_config(config, logger=self.logger)
        if backend is None:
            backend = FFmpegBackend(config, logger=self.logger)
            if not backend.available():
                self.logger.warning(
                    "ffmpeg/ffprobe not found (%s, %s): durations and thumbnails will be missing",
                    backend.ffmpeg_path,
                    backend.ffprobe_path,
                )
        self.extractor = Extractor(
            self.tracker,
            backend=backend,
            config=config,
            logger=self.loggers["enrichment"],
            timeout_ms=timeout_ms,
        )
        self.scheduler = EnrichmentScheduler(
            self.extractor,
            config=config,
            logger=self.logger,
            workers=workers,
            monitor=ResourceMonitor.from_config(config),
        )
        self.progress_reporter = ProgressReporter(
            logger=self.loggers["performance"],
            interval_seconds=float(config.get("progress", "interval_seconds", default=5)),
            enabled=bool(config.get("progress", "enabled", default=True)),
        )
        self.on_progress = on_progress
        self.query_engine = QueryEngine(default_sort=SortSpec("name"))
        self.catalog: Optional[Catalog] = None
        self.last_stats: Optional[EnrichmentStats] = None

    def scan(self, enumerator: Any) -> Catalog:
        """Enumerate, rebuild the catalog and enrich every item.

        Enumeration runs before teardown, so a failing enumerator leaves the
        current catalog in place.
        """
        descriptors = list(enumerator.scan())
        self.teardown()
        self.catalog = Catalog.build(descriptors, self.tracker, self.tag_store, logger=self.logger)
        self.logger.info("Catalog built with %s items", len(self.catalog))
        self.progress_reporter.start()
        try:
            self.last_stats = self.scheduler.run(self.catalog, on_progress=self._report_progress)
        finally:
            self.progress_reporter.stop()
        return self.catalog

    def scan_directory(
        self,
        root: Path,
        fallback: Optional[Iterable[Path]] = None,
    ) -> Catalog:
        """Scan ``root`` recursively, switching to ``fallback`` files on failure."""
        try:
            return self.scan(DirectoryEnumerator(root, config=self.config, logger=self.logger))
        except EnumerationError as exc:
            if fallback is None:
                raise
            self.logger.warning("Directory scan failed (%s); using file selection instead.", exc)
        return self.scan(SelectionEnumerator.from_base(root, fallback, config=self.config, logger=self.logger))

    def query(self, text: str = "", sort: Optional[str | SortSpec] = None) -> List[MediaItem]:
        if self.catalog is None:
            return []
        return self.query_engine.evaluate(self.catalog, text, sort)

    def add_tag(self, relative_path: str, tag: str) -> MediaItem:
        item = self._require_item(relative_path)
        add_tag(item, tag, self.tag_store)
        return item

    def remove_tag(self, relative_path: str, tag: str) -> MediaItem:
        item = self._require_item(relative_path)
        remove_tag(item, tag, self.tag_store)
        return item

    def open_playback(self, relative_path: str) -> PlaybackStream:
        return open_playback(self._require_item(relative_path), self.tracker)

    def export_thumbnails(self, directory: Path) -> int:
        """Write every captured thumbnail as a JPEG under ``directory``."""
        if self.catalog is None:
            return 0
        ensure_directories([directory])
        written = 0
        for item in self.catalog:
            if item.thumbnail is None:
                continue
            target = directory / (item.relative_path.replace("/", "__") + ".jpg")
            target.write_bytes(item.thumbnail.data)
            written += 1
        return written

    def export_thumbnail_manifest(self, path: Path) -> int:
        """Write a JSON mapping of relative path to thumbnail data URL.

        Items without a thumbnail are left out. Returns the number of entries.
        """
        manifest = {}
        if self.catalog is not None:
            for item in self.catalog:
                if item.thumbnail is not None:
                    manifest[item.relative_path] = item.thumbnail.as_data_url()
        ensure_directories([path.parent])
        path.write_text(json.dumps(manifest, indent=2, sort_keys=True), encoding="utf-8")
        return len(manifest)

    def teardown(self) -> None:
        """Release every outstanding handle of the current session."""
        released = self.tracker.release_all()
        if self.catalog is not None:
            for item in self.catalog:
                item.content = None
        if released:
            self.logger.info("Released %s handles before rebuilding the catalog", released)

    def shutdown(self) -> None:
        self.teardown()
        self.catalog = None

    def __enter__(self) -> "LibrarySession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _report_progress(self, completed: int, total: int) -> None:
        self.progress_reporter(completed, total)
        if self.on_progress is not None:
            self.on_progress(completed, total)

    def _require_item(self, relative_path: str) -> MediaItem:
        if self.catalog is None:
            raise KeyError(f"No catalog loaded; cannot find {relative_path}")
        return self.catalog.require(relative_path)


def format_listing(items: Sequence[MediaItem]) -> List[str]:
    lines = []
    for item in items:
        modified = datetime.fromtimestamp(item.modified_at).strftime("%Y-%m-%d %H:%M")
        tags = f" [{', '.join(item.tags)}]" if item.tags else ""
        lines.append(
            f"{format_duration(item.duration):>9}  {format_bytes(item.size_bytes):>9}  "
            f"{modified}  {item.relative_path}{tags}"
        )
    return lines


def _print_progress(completed: int, total: int) -> None:
    print(f"\rProcessing {completed}/{total}", end="", file=sys.stderr, flush=True)
    if completed == total:
        print(file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Catalog, tag and search local video files.")
    parser.add_argument("--config", default=None, help="Optional config path override")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Scan a folder and list matching videos")
    scan.add_argument("root", type=Path, help="Root folder to scan")
    scan.add_argument("--files", nargs="*", type=Path, default=None, help="Fallback file selection")
    scan.add_argument("--query", default="", help="Filter, e.g. '#travel dur:>60 size:<1gb'")
    sort_choices = [f"{key}-{direction}" for key in SORT_KEYS for direction in ("asc", "desc")]
    scan.add_argument("--sort", default="name-asc", choices=sort_choices)
    scan.add_argument("--workers", type=int, default=None, help="Concurrent enrichment workers")
    scan.add_argument("--timeout-ms", type=float, default=None, help="Per-item enrichment deadline")
    scan.add_argument("--thumbnails-dir", type=Path, default=None, help="Write thumbnails here")
    scan.add_argument(
        "--thumbnails-manifest",
        type=Path,
        default=None,
        help="Write thumbnails as data URLs to this JSON file",
    )

    tags = subparsers.add_parser("tags", help="Edit stored tags")
    tags.add_argument("action", choices=["list", "add", "remove"])
    tags.add_argument("relative_path", nargs="?", default=None)
    tags.add_argument("tag", nargs="?", default=None)
    return parser


def _run_scan(config: AppConfig, args: argparse.Namespace) -> int:
    with LibrarySession(
        config, workers=args.workers, timeout_ms=args.timeout_ms, on_progress=_print_progress
    ) as session:
        try:
            session.scan_directory(args.root, fallback=args.files)
        except EnumerationError as exc:
            session.logger.error("Scan failed: %s", exc)
            return 2
        results = session.query(args.query, args.sort)
        for line in format_listing(results):
            print(line)
        print(f"{len(results)} of {len(session.catalog or [])} items")
        if args.thumbnails_dir is not None:
            written = session.export_thumbnails(args.thumbnails_dir)
            session.logger.info("Wrote %s thumbnails to %s", written, args.thumbnails_dir)
        if args.thumbnails_manifest is not None:
            entries = session.export_thumbnail_manifest(args.thumbnails_manifest)
            session.logger.info("Wrote %s thumbnail entries to %s", entries, args.thumbnails_manifest)
    return 0


def _run_tags(config: AppConfig, args: argparse.Namespace) -> int:
    store = TagStore.from_config(config)
    if args.action == "list":
        paths = [args.relative_path] if args.relative_path else store.paths()
        for relative_path in paths:
            print(f"{relative_path}: {', '.join(store.tags_for(relative_path))}")
        return 0
    if not args.relative_path or not args.tag:
        print(f"tags {args.action} requires RELATIVE_PATH and TAG", file=sys.stderr)
        return 2
    current = store.tags_for(args.relative_path)
    value = args.tag.strip()
    if args.action == "add":
        updated = store.set_tags(args.relative_path, [*current, value])
    else:
        updated = store.set_tags(args.relative_path, [tag for tag in current if tag != value])
    print(f"{args.relative_path}: {', '.join(updated)}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        logging.getLogger("video_library").debug("System collation locale unavailable; using default.")
    config = AppConfig.load(Path(args.config) if args.config else None)
    if args.command == "scan":
        return _run_scan(config, args)
    return _run_tags(config, args)


if __name__ == "__main__":
    raise SystemExit(main())
