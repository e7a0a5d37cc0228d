from __future__ import annotations


class SessionError(Exception):
    """Base class for session subsystem errors."""


class InvalidCredentialFormat(SessionError):
    """Persisted credential record is malformed or incomplete (recovered by deletion)."""


class ExpiredCredential(SessionError):
    """Persisted credential record is past its expiry (recovered by deletion)."""


class AuthenticationFailed(SessionError):
    """A login attempt was rejected. The message is safe to show to the user."""

    def __init__(self, message: str = "Invalid login or password") -> None:
        super().__init__(message)
        self.message = message
