from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors; carries a stable code and an HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)

    @property
    def message(self) -> str:
        return str(self)


class MissingCredentialError(DomainError):
    """Access token is required."""

    code = "MISSING_TOKEN"
    status_code = 401


class MissingApiKeyError(MissingCredentialError):
    """API key is required."""

    code = "MISSING_API_KEY"


class MissingRefreshTokenError(MissingCredentialError):
    """Refresh token is required."""

    code = "MISSING_REFRESH_TOKEN"


class InvalidCredentialError(DomainError):
    """Token verification failed."""

    code = "INVALID_TOKEN"
    status_code = 401


class InvalidApiKeyError(InvalidCredentialError):
    """The provided API key is not valid."""

    code = "INVALID_API_KEY"
    status_code = 403


class InvalidRefreshTokenError(InvalidCredentialError):
    """Refresh token is invalid."""

    code = "INVALID_REFRESH_TOKEN"


class TokenExpiredError(DomainError):
    """Access token has expired."""

    code = "TOKEN_EXPIRED"
    status_code = 401


class RefreshTokenExpiredError(TokenExpiredError):
    """Refresh token has expired."""

    code = "REFRESH_TOKEN_EXPIRED"


class TokenRevokedError(DomainError):
    """Refresh token was revoked."""

    code = "REFRESH_TOKEN_REVOKED"
    status_code = 401


class AccountInactiveError(DomainError):
    """Account is not active."""

    code = "ACCOUNT_INACTIVE"
    status_code = 403


class AccountNotFoundError(DomainError):
    """Account not found."""

    code = "ACCOUNT_NOT_FOUND"
    status_code = 404


class RateLimitedError(DomainError):
    """Too many requests."""

    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, message: str | None = None, *, scope: str, retry_after_seconds: int):
        super().__init__(message)
        self.scope = scope
        self.retry_after_seconds = retry_after_seconds


class InputValidationError(DomainError):
    """Invalid input data."""

    code = "VALIDATION_ERROR"
    status_code = 400


class AccountConflictError(DomainError):
    """Unique constraint hit while creating an account or identity link."""

    code = "CONFLICT"
    status_code = 409


class StoreUnavailableError(DomainError):
    """Credential store is unavailable."""

    code = "STORE_UNAVAILABLE"
    status_code = 500


class ExternalAuthError(DomainError):
    """External provider authentication failed."""

    code = "AUTH_FAILED"
    status_code = 401
