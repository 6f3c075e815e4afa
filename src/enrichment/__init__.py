"""
Enrichment pipeline: resource tracking, extraction and scheduling.
"""

from .backend import DecodeError, FFmpegBackend, FFmpegDecodeSession, ffmpeg_available
from .extractor import ExtractionResult, Extractor, FinalizeGate, render_thumbnail, seek_target
from .scheduler import ClaimCursor, EnrichmentScheduler, EnrichmentStats
from .tracker import ResourceLeakError, ResourceTracker, TrackedHandle

__all__ = [
    "ClaimCursor",
    "DecodeError",
    "EnrichmentScheduler",
    "EnrichmentStats",
    "ExtractionResult",
    "Extractor",
    "FFmpegBackend",
    "FFmpegDecodeSession",
    "FinalizeGate",
    "ResourceLeakError",
    "ResourceTracker",
    "TrackedHandle",
    "ffmpeg_available",
    "render_thumbnail",
    "seek_target",
]
