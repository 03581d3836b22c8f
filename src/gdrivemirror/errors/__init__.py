"""Public error exports for gdrivemirror."""

from __future__ import annotations

from .exceptions import (
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
    map_remote_exception,
)

__all__ = [
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
    "map_remote_exception",
]
