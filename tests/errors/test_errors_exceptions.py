import unittest

from gdmirror.errors.exceptions import (
    ApiError,
    AuthError,
    CapacityExceededError,
    ConflictError,
    CredentialsExhaustedError,
    GDMirrorError,
    HttpErrorInfo,
    InvalidArgumentError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    TaskRunningError,
    map_http_error,
)


class TestExceptions(unittest.TestCase):
    def test_base_error_keeps_details_and_cause(self) -> None:
        cause = RuntimeError("root")
        err = GDMirrorError("msg", details={"k": "v"}, cause=cause)
        self.assertEqual(str(err), "msg")
        self.assertEqual(err.details["k"], "v")
        self.assertIs(err.cause, cause)

    def test_hierarchy(self) -> None:
        self.assertTrue(issubclass(CredentialsExhaustedError, AuthError))
        self.assertTrue(issubclass(TaskRunningError, ConflictError))
        self.assertTrue(issubclass(CapacityExceededError, GDMirrorError))

    def test_map_http_error_basic(self) -> None:
        err = map_http_error(HttpErrorInfo(status_code=404, message="not found"))
        self.assertIsInstance(err, NotFoundError)

        err = map_http_error(HttpErrorInfo(status_code=400, message="bad req"))
        self.assertIsInstance(err, InvalidArgumentError)

        err = map_http_error(HttpErrorInfo(status_code=429, message="rate"))
        self.assertIsInstance(err, RateLimitError)

        err = map_http_error(HttpErrorInfo(status_code=409, message="conflict"))
        self.assertIsInstance(err, ConflictError)

        err = map_http_error(HttpErrorInfo(status_code=412, message="precondition"))
        self.assertIsInstance(err, ConflictError)

        err = map_http_error(HttpErrorInfo(status_code=401, message="auth"))
        self.assertIsInstance(err, AuthError)

        err = map_http_error(HttpErrorInfo(status_code=500, message="boom"))
        self.assertIsInstance(err, ApiError)
        self.assertEqual(err.details["status_code"], 500)

    def test_map_http_error_403_variants(self) -> None:
        err = map_http_error(
            HttpErrorInfo(status_code=403, reason="dailyLimitExceeded", message="quota")
        )
        self.assertIsInstance(err, QuotaExceededError)

        err = map_http_error(
            HttpErrorInfo(status_code=403, reason="userRateLimitExceeded", message="x")
        )
        self.assertIsInstance(err, RateLimitError)

        err = map_http_error(
            HttpErrorInfo(status_code=403, reason="forbidden", message="User rate limit exceeded.")
        )
        self.assertIsInstance(err, RateLimitError)

        err = map_http_error(
            HttpErrorInfo(status_code=403, reason="insufficientPermissions", message="x")
        )
        self.assertIsInstance(err, PermissionError)

    def test_map_http_error_file_limit_is_capacity(self) -> None:
        err = map_http_error(
            HttpErrorInfo(
                status_code=403,
                reason="teamDriveFileLimitExceeded",
                message="The file limit for this shared drive has been exceeded.",
            )
        )
        self.assertIsInstance(err, CapacityExceededError)

        err = map_http_error(
            HttpErrorInfo(status_code=400, message="File limit reached")
        )
        self.assertIsInstance(err, CapacityExceededError)

    def test_map_http_error_merges_details_and_cause(self) -> None:
        cause = RuntimeError("x")
        err = map_http_error(
            HttpErrorInfo(status_code=404, reason="notFound", details={"domain": "global"}),
            cause=cause,
        )
        self.assertEqual(err.details["reason"], "notFound")
        self.assertEqual(err.details["domain"], "global")
        self.assertIs(err.cause, cause)
        self.assertEqual(str(err), "HTTP error 404")


if __name__ == "__main__":
    unittest.main()
