"""
Enumeration strategies that turn a root or a file selection into descriptors.
"""

from __future__ import annotations

import fnmatch
import logging
import mimetypes
import os
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from catalog.models import MediaDescriptor
from config import AppConfig

VIDEO_EXTENSIONS = (".mp4", ".mkv", ".mov", ".webm", ".avi", ".m4v")
DEFAULT_MIME_TYPE = "video/*"


class EnumerationError(OSError):
    """Raised when a root location cannot be enumerated."""


def is_video_name(name: str, extensions: Sequence[str] = VIDEO_EXTENSIONS) -> bool:
    return name.lower().endswith(tuple(extensions))


def guess_mime_type(name: str) -> str:
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or DEFAULT_MIME_TYPE


def build_descriptor(path: Path, relative_path: str) -> MediaDescriptor:
    """Create a MediaDescriptor from a filesystem path."""
    stat = path.stat()
    return MediaDescriptor(
        name=path.name,
        relative_path=relative_path,
        size_bytes=stat.st_size,
        modified_at=stat.st_mtime,
        mime_type=guess_mime_type(path.name),
        source=path,
    )


class _EnumeratorBase:
    def __init__(self, config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None) -> None:
        self.config = config
        self.logger = logger or logging.getLogger("video_library")
        extensions = VIDEO_EXTENSIONS
        if config is not None:
            extensions = config.get("scan", "video_extensions", default=VIDEO_EXTENSIONS)
        self.extensions = tuple(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions
        )

    def _describe(self, path: Path, relative_path: str) -> Optional[MediaDescriptor]:
        try:
            return build_descriptor(path, relative_path)
        except OSError as exc:
            self.logger.warning("Skipping unreadable file %s: %s", path, exc)
            return None


class DirectoryEnumerator(_EnumeratorBase):
    """Recursive traversal of a granted root directory."""

    def __init__(
        self,
        root: Path,
        config: Optional[AppConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(config, logger)
        self.root = Path(root)
        get = config.get if config is not None else (lambda *keys, default=None: default)
        self.skip_hidden = bool(get("scan", "skip_hidden", default=True))
        self.follow_symlinks = bool(get("scan", "follow_symlinks", default=False))
        self.excluded_patterns = list(get("exclusions", "file_patterns", default=[]) or [])

    def scan(self) -> Iterator[MediaDescriptor]:
        """Yield descriptors for every video under the root.

        Raises EnumerationError when the root itself is missing or unreadable.
        Unreadable subdirectories are logged and skipped.
        """
        self._check_root()
        for path in self._iter_files():
            relative_path = path.relative_to(self.root).as_posix()
            descriptor = self._describe(path, relative_path)
            if descriptor is not None:
                yield descriptor

    def _check_root(self) -> None:
        if not self.root.exists():
            raise EnumerationError(f"Root not found: {self.root}")
        if not self.root.is_dir():
            raise EnumerationError(f"Root is not a directory: {self.root}")
        try:
            with os.scandir(self.root):
                pass
        except OSError as exc:
            raise EnumerationError(f"Root not readable: {self.root} ({exc})") from exc

    def _iter_files(self) -> Iterator[Path]:
        def on_error(error: OSError) -> None:
            self.logger.warning("Cannot read %s: %s", error.filename, error)

        for dirpath, dirnames, filenames in os.walk(
            self.root, topdown=True, onerror=on_error, followlinks=self.follow_symlinks
        ):
            current = Path(dirpath)
            dirnames[:] = sorted(
                name
                for name in dirnames
                if not self._is_hidden(name) and not self._is_excluded(current / name)
            )
            for filename in sorted(filenames):
                if not is_video_name(filename, self.extensions):
                    continue
                file_path = current / filename
                if not self.follow_symlinks and file_path.is_symlink():
                    continue
                if self._is_hidden(filename) or self._is_excluded(file_path):
                    continue
                yield file_path

    def _is_hidden(self, name: str) -> bool:
        return self.skip_hidden and name.startswith(".")

    def _is_excluded(self, path: Path) -> bool:
        """Return True when a path matches an excluded pattern."""
        relative = path.relative_to(self.root).as_posix()
        for pattern in self.excluded_patterns:
            if fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(relative, pattern):
                return True
        return False


SelectionEntry = Union[Path, str, Tuple[Union[Path, str], Optional[str]]]


class SelectionEnumerator(_EnumeratorBase):
    """Flat selection of files, each optionally carrying its relative path."""

    def __init__(
        self,
        entries: Iterable[SelectionEntry],
        config: Optional[AppConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(config, logger)
        self.entries: List[Tuple[Path, Optional[str]]] = []
        for entry in entries:
            if isinstance(entry, tuple):
                path, relative = entry
            else:
                path, relative = entry, None
            self.entries.append((Path(path), relative))

    @classmethod
    def from_base(
        cls,
        base: Path,
        files: Iterable[Union[Path, str]],
        config: Optional[AppConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "SelectionEnumerator":
        """Selection whose relative paths are computed against ``base``."""
        base = Path(base).resolve()
        entries: List[SelectionEntry] = []
        for file in files:
            path = Path(file).resolve()
            try:
                relative: Optional[str] = path.relative_to(base).as_posix()
            except ValueError:
                relative = None
            entries.append((path, relative))
        return cls(entries, config=config, logger=logger)

    def scan(self) -> Iterator[MediaDescriptor]:
        for path, relative in self.entries:
            if not is_video_name(path.name, self.extensions):
                continue
            relative_path = str(PurePosixPath(relative)) if relative else path.name
            descriptor = self._describe(path, relative_path)
            if descriptor is not None:
                yield descriptor
