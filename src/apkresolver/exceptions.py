"""
Custom exceptions for apkresolver.

This module defines domain-specific exceptions used while resolving the
latest release of a cataloged application. Inside a resolution these are
converted into typed outcomes; only programming errors escape the engine.
"""


class ApkResolverError(Exception):
    """
    Base exception for all apkresolver errors.

    All custom exceptions in apkresolver inherit from this class
    to allow for easy catching of all application-specific errors.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ApkResolverError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Invalid configuration values
    - Unknown device ABI names
    - Configuration file parsing errors
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read."""

    pass


# =============================================================================
# Transport Errors
# =============================================================================


class TransportError(ApkResolverError):
    """
    Base exception for transport-level failures.

    Attributes:
        url: The URL that was being requested when the error occurred.
        status_code: HTTP status code, when a response was received.
        is_retryable: Whether a later attempt could succeed.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        is_retryable: bool = True,
        details: str | None = None,
    ) -> None:
        """
        Initialize the transport exception.

        Args:
            message: The primary error message.
            url: The URL that was being requested.
            status_code: The HTTP status code, if any.
            is_retryable: Whether this error could be retried later.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code
        self.is_retryable = is_retryable


class HTTPStatusError(TransportError):
    """Exception raised when an upstream answers with a non-success status."""

    pass


class RateLimitError(HTTPStatusError):
    """
    Exception raised when the GitHub API rate limit is exhausted.

    Attributes:
        reset_time: When the rate limit will reset (Unix timestamp).
    """

    def __init__(
        self,
        message: str = "GitHub API rate limit exceeded",
        reset_time: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            message,
            url=url,
            status_code=403,
            is_retryable=True,
            details=f"Resets at: {reset_time}",
        )
        self.reset_time = reset_time


# =============================================================================
# Resolution Errors
# =============================================================================


class ResolutionError(ApkResolverError):
    """Base exception for failures of a single resolution."""

    pass


class SourceUnavailableError(ResolutionError):
    """
    Exception raised when the upstream channel cannot be reached.

    Covers timeouts, connection failures and non-success statuses. These
    are transient; callers may retry later.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class UpstreamParseError(ResolutionError):
    """
    Exception raised when an otherwise successful response lacks the
    expected fields or cannot be decoded.

    Attributes:
        url: The URL whose payload could not be parsed.
    """

    def __init__(
        self, message: str, url: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.url = url


class NoCompatibleArtifactError(ResolutionError):
    """Exception raised when no published artifact can run on the device."""

    pass


class UnknownApplicationError(ApkResolverError):
    """Exception raised when an application id is not in the catalog."""

    def __init__(self, app_id: str) -> None:
        super().__init__(f"Unknown application: {app_id}")
        self.app_id = app_id


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ApkResolverError):
    """
    Exception raised when validation fails.

    Attributes:
        field: The name of the field that failed validation.
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


class VersionParseError(ValidationError):
    """Exception raised when a version string has no numeric component."""

    pass
