"""Custom exception hierarchy for DataBar.

Provides specific exceptions for the failure categories the refresh core
distinguishes: configuration, storage, authentication and fetch errors.
"""

from typing import Optional


class DataBarError(Exception):
    """Base exception for all DataBar errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigurationError(DataBarError):
    """Invalid settings or configuration values.

    Examples:
        >>> raise ConfigurationError("Unsupported refresh interval", {"value": 45})
    """

    pass


class PropertyNotFoundError(ConfigurationError):
    """A configured property id is not present in the store."""

    pass


class StorageError(DataBarError):
    """Data persistence errors.

    Raised when the preferences document cannot be written.

    Examples:
        >>> raise StorageError("Failed to save preferences", {"path": "/path/to/file"})
    """

    pass


class TokenError(DataBarError):
    """An access token could not be obtained or refreshed.

    Raised when there are issues with:
    - Missing stored credentials (signed out)
    - Refresh token rejected or revoked
    - Token endpoint unreachable
    """

    pass


class FetchError(DataBarError):
    """Base class for failures talking to the Analytics APIs."""

    pass


class TransportError(FetchError):
    """The request never produced an HTTP response (DNS, TLS, timeout)."""

    pass


class HttpStatusError(FetchError):
    """The API answered with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the API.
        body: Response body, truncated for logging.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        body: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        details = dict(details or {})
        details["status_code"] = status_code
        if body:
            details["body"] = body[:500]
        super().__init__(message, details)
        self.status_code = status_code
        self.body = body


class MalformedResponseError(FetchError):
    """The API answered 2xx but the payload could not be decoded."""

    pass
