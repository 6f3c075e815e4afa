"""
Session orchestration for the video library.
"""

from .main import LibrarySession, build_parser, format_listing, main

__all__ = ["LibrarySession", "build_parser", "format_listing", "main"]
