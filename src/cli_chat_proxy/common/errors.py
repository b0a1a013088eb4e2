"""Error types surfaced by the proxy as OpenAI-style error envelopes."""
from __future__ import annotations


class ProxyError(Exception):
    """Base class. Subclasses fix the HTTP status and OpenAI error type."""

    status_code: int = 500
    error_type: str = "server_error"


class InvalidRequestError(ProxyError):
    """Request body is missing required fields or has the wrong shape."""

    status_code = 400
    error_type = "invalid_request_error"


class RequestParseError(ProxyError):
    """Request body is not valid JSON. Reported as a server error."""


class SpawnError(ProxyError):
    """The CLI executable could not be launched."""


class ProcessError(ProxyError):
    """The CLI exited with a non-zero status."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ProcessTimeoutError(ProcessError):
    """The CLI did not finish within the configured timeout and was killed."""
