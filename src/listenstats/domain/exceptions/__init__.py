"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, the message is stored as an attribute so handlers can return it without
    # parsing str(exception). Never raise this base directly, pick a subclass so the exception
    # handlers map it to the right status code.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class DuplicateEntityException(DomainException):
    """Raised when trying to create a duplicate entity.

    HTTP Status: 400

    Example:
        raise DuplicateEntityException("Email already exists")
    """

    pass


class ValidationError(DomainException):
    """Input validation failed.

    HTTP Status: 400

    Example:
        raise ValidationError("Email and password are required")
        raise ValidationError("Only .json files are allowed")
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.details = details


class AuthenticationError(DomainException):
    """Credentials are missing or wrong.

    HTTP Status: 401

    Example:
        raise AuthenticationError("Invalid credentials")
    """

    pass


class AuthorizationError(DomainException):
    """Token was presented but cannot be accepted.

    HTTP Status: 403

    Example:
        raise AuthorizationError("Token expired")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503

    Example:
        raise ConfigurationError("Spotify credentials not configured")
    """

    pass


class ExternalServiceError(DomainException):
    """A call to Spotify failed.

    HTTP Status: 502
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ImportFailedError(DomainException):
    """An uploaded history file could not be imported.

    HTTP Status: 500. ``details`` carries the underlying parse or database error.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.details = details


class TokenRefreshException(DomainException):
    """Raised when a Spotify token refresh fails.

    Hey future me - the poller catches this and skips the user for the current cycle.
    A 400 with invalid_grant means the refresh token is dead and the user must reconnect.
    """

    def __init__(
        self,
        message: str = "Token refresh failed. Please reconnect Spotify.",
        error_code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.http_status = http_status

    @property
    def requires_reauth(self) -> bool:
        """Check if error requires user re-authentication."""
        return self.error_code == "invalid_grant" or self.http_status in (400, 401, 403)


__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "ConfigurationError",
    "DomainException",
    "DuplicateEntityException",
    "ExternalServiceError",
    "ImportFailedError",
    "TokenRefreshException",
    "ValidationError",
]
