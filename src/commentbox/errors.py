from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    """Raised when a token is malformed, badly signed or expired."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    """Raised on failed login. Same message for unknown email and wrong password."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class AccessDeniedError(UserError):
    """Raised when a user tries to access a resource they do not have permission for."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class DuplicateEmailError(ValidationError):
    """Raised when registering with an email that is already taken."""

    def __init__(self) -> None:
        super().__init__("Email already registered")


class RateLimitError(UserError):
    """Raised when a client exceeds its request budget."""

    def __init__(self, message: str = "Too many requests, please try again later.") -> None:
        super().__init__(message)
