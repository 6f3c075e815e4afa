"""
Tag persistence and editing.
"""

from .store import TagStore, add_tag, normalize_tags, remove_tag

__all__ = ["TagStore", "add_tag", "normalize_tags", "remove_tag"]
