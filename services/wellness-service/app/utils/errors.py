"""
Session Errors
Caller-facing error taxonomy for authentication operations
"""

from enum import Enum
from typing import Optional


class SessionError(Exception):
    """Base class for errors surfaced to callers of the session resolver"""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class CredentialError(SessionError):
    """Credential creation failed (email in use, weak password, malformed email)"""

    status_code = 400


class AuthError(SessionError):
    """Password sign-in failed. Always carries the same generic message."""

    status_code = 401
    GENERIC_MESSAGE = "Invalid email or password."

    def __init__(self):
        super().__init__(self.GENERIC_MESSAGE)


class InteractiveAuthReason(str, Enum):
    CANCELLED = "cancelled"
    POPUP_BLOCKED = "popup_blocked"
    ACCOUNT_EXISTS = "account_exists"


_INTERACTIVE_MESSAGES = {
    InteractiveAuthReason.CANCELLED: "Sign-in was cancelled.",
    InteractiveAuthReason.POPUP_BLOCKED: "The sign-in popup was blocked. Please allow popups and try again.",
    InteractiveAuthReason.ACCOUNT_EXISTS: "An account already exists with the same email but a different sign-in method.",
}


class InteractiveAuthError(SessionError):
    """Interactive (social) sign-in failed for a reason the caller can act on"""

    def __init__(self, reason: InteractiveAuthReason):
        status_code = 409 if reason == InteractiveAuthReason.ACCOUNT_EXISTS else 400
        super().__init__(_INTERACTIVE_MESSAGES[reason], status_code)
        self.reason = reason


class GenericAuthFailure(SessionError):
    """Catch-all for provider failures with no more specific mapping"""

    status_code = 500

    def __init__(self, message: str = "Authentication failed. Please try again later."):
        super().__init__(message)
