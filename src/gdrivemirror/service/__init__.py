"""Remote storage service exports for gdrivemirror."""

from __future__ import annotations

from .base import (
    ChangePage,
    DownloadBody,
    IterableBody,
    RecordPage,
    RemoteStorageService,
    UploadChannel,
    UploadChunkResult,
    build_patch,
)
from .fields import CHANGE_FIELDS, FILE_FIELDS, LIST_FIELDS
from .google_drive import GoogleDriveService, format_range
from .memory import InMemoryDriveService

__all__ = [
    "RemoteStorageService",
    "GoogleDriveService",
    "InMemoryDriveService",
    "RecordPage",
    "ChangePage",
    "UploadChannel",
    "UploadChunkResult",
    "DownloadBody",
    "IterableBody",
    "build_patch",
    "format_range",
    "FILE_FIELDS",
    "LIST_FIELDS",
    "CHANGE_FIELDS",
]
