from abc import ABC
from enum import StrEnum


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


class AccessDeniedError(UserError):
    """Raised when a user tries to access a resource they do not have permission for."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class PasswordRule(StrEnum):
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    NOT_ENOUGH_DIGITS = "not_enough_digits"
    NOT_ENOUGH_SYMBOLS = "not_enough_symbols"
    NOT_ENOUGH_LETTERS = "not_enough_letters"


class PasswordPolicyError(ValidationError):
    """Raised when a password violates the strength policy.

    ``rule`` names the first rule that failed so callers can present a
    precise message.
    """

    def __init__(self, rule: PasswordRule, message: str) -> None:
        super().__init__(message)
        self.rule = rule


class SessionFailure(StrEnum):
    KEY_GENERATION_FAILED = "Session key generation failed"
    NOT_CREATED = "Session not created"
    NOT_FOUND = "Session not found"
    EXPIRED = "Session expired"
    IP_MISMATCH = "Session IP address mismatch"
    RENEWAL_FAILED = "Failed to renew session"
    DELETION_FAILED = "Failed to delete session"
    DESTROY_ALL_FAILED = "Failed to destroy all sessions"


class SessionError(Exception):
    """Raised by the session lifecycle. ``kind`` tells which transition failed."""

    def __init__(self, kind: SessionFailure) -> None:
        super().__init__(kind.value)
        self.kind = kind


class LinkFailure(StrEnum):
    NOT_FOUND = "Link not found"
    EXPIRED = "Link expired"
    INVALID_TYPE = "Invalid link type"
    ALREADY_EXISTS = "Link already exists"


class LinkError(Exception):
    """Raised by the secure link issuer. ``kind`` tells why the link was rejected."""

    def __init__(self, kind: LinkFailure) -> None:
        super().__init__(kind.value)
        self.kind = kind


class StorageError(Exception):
    """Opaque failure reported by a storage backend."""


class DuplicateRecordError(StorageError):
    """Raised when a write violates a declared uniqueness constraint."""


class NotificationError(Exception):
    """Opaque failure reported while rendering or delivering a notification."""
