"""Synchronization exports for gdrivemirror."""

from __future__ import annotations

from .record_stream import ChangeFeedStream, FullListingStream, RecordStream
from .synchronizer import EntrySynchronizer, GraphListener

__all__ = [
    "EntrySynchronizer",
    "GraphListener",
    "RecordStream",
    "FullListingStream",
    "ChangeFeedStream",
]
