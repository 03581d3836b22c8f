"""gdrivemirror public API."""

from __future__ import annotations

from gdrivemirror.auth import AuthInfo, OAuthClient
from gdrivemirror.config import DriveConfig
from gdrivemirror.errors import (
    ApiError,
    AuthError,
    ConflictError,
    ConsistencyTimeoutError,
    GDriveMirrorError,
    HashUnavailableError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    RetriesExhaustedError,
    SnapshotError,
    TargetExistsError,
    TargetNotEmptyError,
    UploadIncompleteError,
    map_http_error,
)
from gdrivemirror.graph import EntryGraph
from gdrivemirror.models import Entry, File, Folder, RemoteRecord, SyncReport, SyncState
from gdrivemirror.retry import RetryingInvoker, RetryPolicy
from gdrivemirror.service import GoogleDriveService, InMemoryDriveService, RemoteStorageService
from gdrivemirror.session import DriveSession
from gdrivemirror.storage import SnapshotStore
from gdrivemirror.sync import EntrySynchronizer, GraphListener
from gdrivemirror.transfer import ChunkedDownloadStream, ChunkedUploadSession

__all__ = [
    # High-level
    "DriveSession",
    "DriveConfig",
    # Auth
    "AuthInfo",
    "OAuthClient",
    # Core
    "EntryGraph",
    "EntrySynchronizer",
    "GraphListener",
    "RetryingInvoker",
    "RetryPolicy",
    "SnapshotStore",
    "ChunkedUploadSession",
    "ChunkedDownloadStream",
    # Services
    "RemoteStorageService",
    "GoogleDriveService",
    "InMemoryDriveService",
    # Models
    "Entry",
    "File",
    "Folder",
    "RemoteRecord",
    "SyncReport",
    "SyncState",
    # Errors
    "GDriveMirrorError",
    "InvalidStateError",
    "InvalidArgumentError",
    "AuthError",
    "PermissionError",
    "NotFoundError",
    "ConflictError",
    "TargetExistsError",
    "TargetNotEmptyError",
    "RateLimitError",
    "QuotaExceededError",
    "NetworkError",
    "ApiError",
    "RetriesExhaustedError",
    "ConsistencyTimeoutError",
    "UploadIncompleteError",
    "HashUnavailableError",
    "SnapshotError",
    "HttpErrorInfo",
    "map_http_error",
]
