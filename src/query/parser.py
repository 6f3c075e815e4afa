"""
Query token compiler.

Supported tokens, combined with AND when separated by whitespace:

- plain text: substring of the name or relative path
- ``#tag``: substring of any tag
- ``dur:>60`` (seconds), ``dur:<=300``, ``dur:=120``
- ``size:<500MB`` (``b``, ``kb``, ``mb``, ``gb``, ``tb``; 1024-based)

Tokens that do not parse as a filter fall back to plain text matching.
"""

from __future__ import annotations

import operator
import re
from typing import Callable, Dict, List

from catalog.models import MediaItem

Predicate = Callable[[MediaItem], bool]

_COMPARATORS: Dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    "=": operator.eq,
    ">": operator.gt,
    ">=": operator.ge,
}

_UNIT_MULTIPLIERS: Dict[str, int] = {
    "b": 1,
    "kb": 1024,
    "mb": 1024**2,
    "gb": 1024**3,
    "tb": 1024**4,
}

_DURATION_PATTERN = re.compile(r"^dur:(<=|>=|=|<|>)(\d+(?:\.\d+)?)$", re.IGNORECASE)
_SIZE_PATTERN = re.compile(
    r"^size:(<=|>=|=|<|>)(\d+(?:\.\d+)?)(b|kb|mb|gb|tb)?$", re.IGNORECASE
)


def parse_token(token: str) -> Predicate:
    """Compile one token into a predicate. Never raises for odd input."""
    if token.startswith("#"):
        wanted = token[1:].lower()
        return lambda item: any(wanted in tag.lower() for tag in item.tags)

    match = _DURATION_PATTERN.match(token)
    if match:
        compare = _COMPARATORS[match.group(1)]
        limit = float(match.group(2))
        return lambda item: compare(item.duration or 0.0, limit)

    match = _SIZE_PATTERN.match(token)
    if match:
        compare = _COMPARATORS[match.group(1)]
        unit = (match.group(3) or "b").lower()
        limit = float(match.group(2)) * _UNIT_MULTIPLIERS[unit]
        return lambda item: compare(item.size_bytes or 0, limit)

    needle = token.lower()
    return lambda item: needle in item.name.lower() or needle in item.relative_path.lower()


def tokenize(query: str) -> List[str]:
    return query.split()


def compile_query(query: str) -> Predicate:
    """AND-combine the predicates of every token; an empty query matches all."""
    predicates = [parse_token(token) for token in tokenize(query or "")]
    if not predicates:
        return lambda item: True
    return lambda item: all(predicate(item) for predicate in predicates)
