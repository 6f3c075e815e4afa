"""
Query language for filtering and sorting the catalog.
"""

from .engine import QueryEngine
from .parser import Predicate, compile_query, parse_token, tokenize
from .sorting import SORT_KEYS, SortSpec

__all__ = [
    "Predicate",
    "QueryEngine",
    "SORT_KEYS",
    "SortSpec",
    "compile_query",
    "parse_token",
    "tokenize",
]
