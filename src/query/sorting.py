"""
Sort selectors for catalog listings.
"""

from __future__ import annotations

import locale
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List

from catalog.models import MediaItem

SORT_KEYS = ("name", "date", "size", "dur")


def _name_key(item: MediaItem) -> Any:
    return (locale.strxfrm(item.name.casefold()), locale.strxfrm(item.name))


_KEY_FUNCTIONS: Dict[str, Callable[[MediaItem], Any]] = {
    "name": _name_key,
    "date": lambda item: item.modified_at or 0,
    "size": lambda item: item.size_bytes or 0,
    "dur": lambda item: item.duration or 0,
}


@dataclass(frozen=True)
class SortSpec:
    """Sort key plus direction."""

    key: str = "name"
    descending: bool = False

    def __post_init__(self) -> None:
        if self.key not in _KEY_FUNCTIONS:
            raise ValueError(f"Unknown sort key: {self.key!r} (expected one of {', '.join(SORT_KEYS)})")

    @classmethod
    def parse(cls, selector: str) -> "SortSpec":
        """Parse selectors such as ``size-desc`` or ``name-asc``."""
        key, _, direction = selector.strip().lower().partition("-")
        if direction not in ("", "asc", "desc"):
            raise ValueError(f"Unknown sort direction: {direction!r}")
        return cls(key=key, descending=direction == "desc")

    def apply(self, items: Iterable[MediaItem]) -> List[MediaItem]:
        return sorted(items, key=_KEY_FUNCTIONS[self.key], reverse=self.descending)

    def __str__(self) -> str:
        return f"{self.key}-{'desc' if self.descending else 'asc'}"
