from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """

    code: str = "bad_request"


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    code = "not_found"

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class PrincipalNotFound(NotFoundError):
    """Raised when no user is registered under the requested email."""

    code = "principal_not_found"

    def __init__(self, message: str = "User not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    code = "authentication_error"

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class InvalidToken(AuthenticationError):
    code = "invalid_token"

    def __init__(self, message: str = "Invalid magic link") -> None:
        super().__init__(message)


class TokenExpired(AuthenticationError):
    code = "token_expired"

    def __init__(self, message: str = "Magic link has expired") -> None:
        super().__init__(message)


class TokenAlreadyUsed(AuthenticationError):
    code = "token_already_used"

    def __init__(self, message: str = "Magic link has already been used") -> None:
        super().__init__(message)


class InvalidSession(AuthenticationError):
    code = "invalid_session"

    def __init__(self, message: str = "Invalid session") -> None:
        super().__init__(message)


class SessionExpired(AuthenticationError):
    code = "session_expired"

    def __init__(self, message: str = "Session has expired") -> None:
        super().__init__(message)


class CredentialInvalid(AuthenticationError):
    code = "credential_invalid"

    def __init__(self, message: str = "Invalid access token") -> None:
        super().__init__(message)


class CredentialExpired(AuthenticationError):
    """Raised for a well-formed access token past its expiry; clients should refresh."""

    code = "credential_expired"

    def __init__(self, message: str = "Access token has expired") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Raised when a user tries to access a resource they do not have permission for."""

    code = "access_denied"

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""

    code = "validation_error"


class InvalidRoleAssignment(ValidationError):
    """Raised when a role and team combination breaks the team rules."""

    code = "invalid_role_assignment"


class RateLimitExceeded(UserError):
    code = "rate_limited"

    def __init__(self, message: str = "Too many requests, try again later") -> None:
        super().__init__(message)
