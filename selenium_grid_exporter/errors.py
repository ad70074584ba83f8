"""
Error types raised while fetching and decoding Selenium Grid status.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class FetchError(ExporterError):
    """The status request to the grid could not be completed."""


class TransportError(FetchError):
    """Network-level failure: connection refused, DNS or TLS error."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"transport error: {cause}")


class FetchTimeout(FetchError):
    """The grid did not answer within the configured timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"request timed out after {timeout}s")


class BadStatus(FetchError):
    """The grid answered with a non-2xx HTTP status."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        message = f"unexpected HTTP status: {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class DecodeError(ExporterError):
    """The response body is not a well-formed status document."""
