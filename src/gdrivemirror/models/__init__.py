"""Public model exports for gdrivemirror."""

from __future__ import annotations

from .entry import Entry, File, Folder, entry_from_record
from .record import RemoteRecord, record_from_drive_file
from .results import SyncMode, SyncReport
from .sync_state import SyncState

__all__ = [
    "Entry",
    "File",
    "Folder",
    "RemoteRecord",
    "SyncMode",
    "SyncReport",
    "SyncState",
    "entry_from_record",
    "record_from_drive_file",
]
