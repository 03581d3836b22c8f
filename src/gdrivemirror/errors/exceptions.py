"""Exception hierarchy and remote error mapping for gdrivemirror."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

import requests
from googleapiclient.errors import HttpError


class GDriveMirrorError(Exception):
    """
    Base exception for gdrivemirror.

    Attributes:
        details: Structured context (entry id, attempted operation, HTTP status).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class InvalidStateError(GDriveMirrorError):
    """Raised when an object is used in an invalid state."""


class InvalidArgumentError(GDriveMirrorError):
    """Raised when arguments are invalid (locally or HTTP 400)."""


class AuthError(GDriveMirrorError):
    """Raised when authorization fails (HTTP 401 or OAuth load/refresh failure)."""


class PermissionError(GDriveMirrorError):
    """Raised when access is denied (HTTP 403 non-quota)."""


class NotFoundError(GDriveMirrorError):
    """Raised when the remote confirms a resource does not exist (HTTP 404)."""


class ConflictError(GDriveMirrorError):
    """Raised on name collisions or remote precondition conflicts (HTTP 409/412)."""


class TargetExistsError(ConflictError):
    """Raised when the target name is taken and overwriting was not requested."""


class TargetNotEmptyError(ConflictError):
    """Raised when a non-empty folder would be overwritten or deleted."""


class RateLimitError(GDriveMirrorError):
    """Raised when rate-limited (HTTP 429)."""


class QuotaExceededError(GDriveMirrorError):
    """Raised when quota is exceeded (HTTP 403 with quota-related reason)."""


class NetworkError(GDriveMirrorError):
    """Raised when network/timeout issues prevent the request."""


class ApiError(GDriveMirrorError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


class RetriesExhaustedError(GDriveMirrorError):
    """Raised when a transient condition persisted past the attempt budget."""


class ConsistencyTimeoutError(GDriveMirrorError):
    """Raised when the remote never reflected an expected mutation."""


class UploadIncompleteError(GDriveMirrorError):
    """Raised when all bytes were sent but the remote did not confirm the file."""


class HashUnavailableError(GDriveMirrorError):
    """Raised when a file has no content checksum."""


class SnapshotError(GDriveMirrorError):
    """Raised when a persisted snapshot cannot be read."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to gdrivemirror exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


_QUOTA_REASON_KEYWORDS: tuple[str, ...] = (
    "quota",
    "rateLimitExceeded",
    "userRateLimitExceeded",
    "dailyLimitExceeded",
    "usageLimits",
    "storageQuotaExceeded",
)


def _is_quota_reason(reason: str | None) -> bool:
    if not reason:
        return False
    return any(key.lower() in reason.lower() for key in _QUOTA_REASON_KEYWORDS)


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> GDriveMirrorError:
    """
    Map an HTTP error to a gdrivemirror exception.

    Policy:
        - 400 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> PermissionError, or QuotaExceededError if quota-related
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        if _is_quota_reason(info.reason):
            return QuotaExceededError(message, details=details, cause=cause)
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)


def map_remote_exception(exc: BaseException) -> GDriveMirrorError:
    """
    Translate an exception raised by a remote call into the gdrivemirror hierarchy.

    gdrivemirror errors pass through unchanged. googleapiclient ``HttpError`` and
    ``requests.HTTPError`` are mapped by status code; transport failures become
    NetworkError; anything else becomes ApiError.
    """
    if isinstance(exc, GDriveMirrorError):
        return exc

    if isinstance(exc, HttpError):
        return map_http_error(_google_http_error_to_info(exc), cause=exc)

    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return map_http_error(_requests_error_to_info(exc), cause=exc)
    if isinstance(exc, requests.RequestException):
        return NetworkError("Network error", cause=exc)

    if isinstance(exc, (OSError, TimeoutError)):
        return NetworkError("Network error", cause=exc)

    return ApiError("Drive API error", cause=exc)


def _google_http_error_to_info(exc: Any) -> HttpErrorInfo:
    status_code = getattr(getattr(exc, "resp", None), "status", None)
    reason = getattr(getattr(exc, "resp", None), "reason", None)
    message, reason, details = _parse_error_payload(getattr(exc, "content", None), reason)

    if not isinstance(status_code, int):
        status_code = 0

    return HttpErrorInfo(
        status_code=status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )


def _requests_error_to_info(exc: Any) -> HttpErrorInfo:
    response = exc.response
    status_code = getattr(response, "status_code", 0)
    reason = getattr(response, "reason", None)
    message, reason, details = _parse_error_payload(getattr(response, "content", None), reason)

    return HttpErrorInfo(
        status_code=status_code if isinstance(status_code, int) else 0,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )


def _parse_error_payload(
    content: Any,
    reason: Any,
) -> tuple[str | None, Any, dict[str, Any]]:
    message = None
    details: dict[str, Any] = {}

    if isinstance(content, (bytes, bytearray)):
        try:
            payload = json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return message, reason, details

        err = payload.get("error", {}) if isinstance(payload, dict) else {}
        if not isinstance(err, dict):
            return message, reason, details

        message = err.get("message") or None
        errors = err.get("errors") or []
        if errors and isinstance(errors, list) and isinstance(errors[0], dict):
            details["domain"] = errors[0].get("domain")
            details["reason_detail"] = errors[0].get("reason")
            if isinstance(errors[0].get("reason"), str):
                reason = errors[0]["reason"]

    return message, reason, details
