import unittest
from unittest.mock import Mock

import requests
from googleapiclient.errors import HttpError

from gdrivemirror.errors.exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    GDriveMirrorError,
    HttpErrorInfo,
    InvalidArgumentError,
    NetworkError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    TargetExistsError,
    TargetNotEmptyError,
    map_http_error,
    map_remote_exception,
)


class TestExceptions(unittest.TestCase):
    def test_base_error_keeps_details_and_cause(self) -> None:
        cause = RuntimeError("root")
        err = GDriveMirrorError("msg", details={"k": "v"}, cause=cause)
        self.assertEqual(str(err), "msg")
        self.assertEqual(err.details["k"], "v")
        self.assertIs(err.cause, cause)

    def test_target_errors_are_conflicts(self) -> None:
        self.assertTrue(issubclass(TargetExistsError, ConflictError))
        self.assertTrue(issubclass(TargetNotEmptyError, ConflictError))

    def test_map_http_error_basic(self) -> None:
        err = map_http_error(HttpErrorInfo(status_code=404, message="not found"))
        self.assertIsInstance(err, NotFoundError)

        err = map_http_error(HttpErrorInfo(status_code=400, message="bad req"))
        self.assertIsInstance(err, InvalidArgumentError)

        err = map_http_error(HttpErrorInfo(status_code=429, message="rate"))
        self.assertIsInstance(err, RateLimitError)

        err = map_http_error(HttpErrorInfo(status_code=409, message="conflict"))
        self.assertIsInstance(err, ConflictError)

        err = map_http_error(HttpErrorInfo(status_code=401, message="auth"))
        self.assertIsInstance(err, AuthError)

    def test_map_http_error_403_quota_vs_permission(self) -> None:
        err = map_http_error(
            HttpErrorInfo(status_code=403, reason="quotaExceeded", message="quota")
        )
        self.assertIsInstance(err, QuotaExceededError)

        err = map_http_error(
            HttpErrorInfo(status_code=403, reason="insufficientPermissions", message="x")
        )
        self.assertIsInstance(err, PermissionError)

    def test_map_http_error_5xx_is_api_error(self) -> None:
        err = map_http_error(HttpErrorInfo(status_code=503, message="unavail"))
        self.assertIsInstance(err, ApiError)


class TestMapRemoteException(unittest.TestCase):
    def test_own_errors_pass_through(self) -> None:
        err = NotFoundError("gone")
        self.assertIs(map_remote_exception(err), err)

    def test_google_http_error_401_is_auth_error(self) -> None:
        resp = Mock()
        resp.status = 401
        resp.reason = "Unauthorized"
        exc = HttpError(resp=resp, content=b"{}")

        mapped = map_remote_exception(exc)
        self.assertIsInstance(mapped, AuthError)
        self.assertIs(mapped.cause, exc)

    def test_google_http_error_reads_reason_from_payload(self) -> None:
        resp = Mock()
        resp.status = 403
        resp.reason = "Forbidden"
        content = (
            b'{"error": {"message": "Limit", "errors": [{"reason": "storageQuotaExceeded"}]}}'
        )
        mapped = map_remote_exception(HttpError(resp=resp, content=content))
        self.assertIsInstance(mapped, QuotaExceededError)

    def test_requests_http_error_is_mapped_by_status(self) -> None:
        response = requests.Response()
        response.status_code = 404
        response._content = b""
        exc = requests.HTTPError(response=response)

        self.assertIsInstance(map_remote_exception(exc), NotFoundError)

    def test_transport_failures_are_network_errors(self) -> None:
        self.assertIsInstance(
            map_remote_exception(requests.ConnectionError("reset")), NetworkError
        )
        self.assertIsInstance(map_remote_exception(TimeoutError("slow")), NetworkError)

    def test_unknown_exception_is_api_error(self) -> None:
        self.assertIsInstance(map_remote_exception(ValueError("x")), ApiError)


if __name__ == "__main__":
    unittest.main()
