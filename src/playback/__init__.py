"""
Playback package.
"""

from .stream import PlaybackStream, open_playback

__all__ = ["PlaybackStream", "open_playback"]
