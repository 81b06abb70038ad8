"""Cleanup module: turn a raw transcript into a titled markdown document."""

from .transcript_cleaner import CleanupResult, TranscriptCleaner

__all__ = [
    "CleanupResult",
    "TranscriptCleaner",
]
