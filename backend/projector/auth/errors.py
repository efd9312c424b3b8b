from enum import Enum
from typing import Any

from fastapi import status


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class AuthError(Exception):
    """
    Base class for every failure the auth core reports to its callers.

    `message` is the only text that may leave the process. `reason` is kept
    for logs and is never rendered into a response.
    """

    kind: AuthErrorKind = AuthErrorKind.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        *,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.reason = reason
        self.details = details
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class InvalidCredentials(AuthError):
    kind = AuthErrorKind.INVALID_CREDENTIALS
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class InvalidRefreshToken(AuthError):
    kind = AuthErrorKind.INVALID_REFRESH_TOKEN
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid refresh token"


class Unauthorized(AuthError):
    kind = AuthErrorKind.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired access token"

    @property
    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class Forbidden(AuthError):
    kind = AuthErrorKind.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"

    def __init__(self, required: list[str], actual: list[str]):
        super().__init__(
            reason="missing_permissions",
            details={"required": required, "user": actual},
        )
        self.required = required
        self.actual = actual


class InternalError(AuthError):
    kind = AuthErrorKind.INTERNAL_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Authorization check failed"


class RateLimitExceeded(AuthError):
    kind = AuthErrorKind.RATE_LIMIT_EXCEEDED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many authentication attempts, please try again later"

    def __init__(self, retry_after: int, *, reason: str | None = None):
        super().__init__(reason=reason)
        self.retry_after = retry_after

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class TokenVerificationError(Exception):
    """Raised by the token issuer when a token fails signature, claim or expiry checks."""


class InvalidPermissionData(ValueError):
    """Raised when a role's stored permissions cannot be parsed."""
