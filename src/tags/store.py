"""
JSON-backed tag persistence keyed by relative path.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from catalog.models import MediaItem
from config import AppConfig

STORE_VERSION = 1


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Strip, drop empties and de-duplicate while keeping first-seen order."""
    result: List[str] = []
    for tag in tags:
        value = str(tag).strip()
        if value and value not in result:
            result.append(value)
    return result


class TagStore:
    """Mapping of ``relative_path -> {"tags": [...]}`` saved as one JSON file.

    The file is read once on construction and rewritten in full after every
    change. A missing file starts an empty store.
    """

    def __init__(self, path: Path, logger: Optional[logging.Logger] = None) -> None:
        self.path = path
        self.logger = logger or logging.getLogger("video_library")
        self._items: Dict[str, Dict[str, List[str]]] = self._load()

    @classmethod
    def from_config(cls, config: AppConfig, logger: Optional[logging.Logger] = None) -> "TagStore":
        return cls(config.resolve_path("paths", "tag_store", default="data/tags.json"), logger=logger)

    def _load(self) -> Dict[str, Dict[str, List[str]]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self.logger.warning("Tag store unreadable, starting empty: %s (%s)", self.path, exc)
            return {}
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, dict):
            self.logger.warning("Tag store has no item mapping, starting empty: %s", self.path)
            return {}
        loaded: Dict[str, Dict[str, List[str]]] = {}
        for relative_path, entry in items.items():
            tags = entry.get("tags") if isinstance(entry, dict) else None
            if isinstance(tags, list):
                loaded[str(relative_path)] = {"tags": normalize_tags(tags)}
        return loaded

    def save(self) -> None:
        """Write the whole mapping atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"version": STORE_VERSION, "items": self._items}, indent=2, ensure_ascii=False)
        fd, temp_name = tempfile.mkstemp(prefix=".tags-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(temp_name, self.path)
        except OSError:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def tags_for(self, relative_path: str) -> List[str]:
        entry = self._items.get(relative_path)
        return list(entry["tags"]) if entry else []

    def set_tags(self, relative_path: str, tags: Iterable[str]) -> List[str]:
        """Upsert the entry for ``relative_path`` and persist the store."""
        normalized = normalize_tags(tags)
        self._items[relative_path] = {"tags": normalized}
        self.save()
        return list(normalized)

    def paths(self) -> List[str]:
        return sorted(self._items)

    def __contains__(self, relative_path: object) -> bool:
        return relative_path in self._items

    def __len__(self) -> int:
        return len(self._items)


def add_tag(item: MediaItem, tag: str, store: TagStore) -> bool:
    """Attach ``tag`` to ``item`` and persist. Returns False for no-ops."""
    value = tag.strip()
    if not value:
        return False
    changed = value not in item.tags
    item.tags = normalize_tags([*item.tags, value])
    store.set_tags(item.relative_path, item.tags)
    return changed


def remove_tag(item: MediaItem, tag: str, store: TagStore) -> bool:
    """Detach ``tag`` from ``item`` and persist. Returns False if absent."""
    value = tag.strip()
    changed = value in item.tags
    item.tags = [existing for existing in item.tags if existing != value]
    store.set_tags(item.relative_path, item.tags)
    return changed
