"""
Monitoring errors.

Client-level failures are raised as UpstreamError subclasses and propagate
unchanged through the service layer. Fan-out operations wrap the first
failed branch in CompositeFetchFailure.
"""

from typing import Optional

ERROR_BODY_PREVIEW_CHARS = 200


class MonitoringError(Exception):
    """Base class for monitoring gateway errors."""


class UpstreamError(MonitoringError):
    """A call to the Kibana Monitoring API failed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class UpstreamTransportError(UpstreamError):
    """Network-level failure: connect/write/read timeout, connection reset."""

    def __init__(self, path: str, message: str):
        super().__init__(path, f"Upstream transport error on {path}: {message}")


class UpstreamStatusError(UpstreamError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, path: str, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body[:ERROR_BODY_PREVIEW_CHARS]
        super().__init__(path, f"Request failed: {status_code} - {self.body}")


class UpstreamDecodeError(UpstreamError):
    """Upstream answered 2xx but the payload could not be decoded."""

    def __init__(self, path: str, message: str):
        super().__init__(path, f"Invalid upstream payload on {path}: {message}")


class CompositeFetchFailure(MonitoringError):
    """One branch of a parallel fetch failed; no partial result is returned."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to fetch monitoring data for {operation}: {cause}")

    @property
    def status_code(self) -> Optional[int]:
        return getattr(self.cause, "status_code", None)
