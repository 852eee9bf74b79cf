"""
Data models for wellness service
"""

from .session import (
    Role, AuthProvider, Identity, Session, ProfileDocument, CredentialsRequest,
    OAuthCallback, SessionResponse
)
from .coach import Coach, CoachResponse, RatingRequest
from .email import (
    WelcomeEmailRequest, NotificationResponse, EmailAttachment, CustomEmailRequest,
    CustomEmailResponse
)

__all__ = [
    "Role",
    "AuthProvider",
    "Identity",
    "Session",
    "ProfileDocument",
    "CredentialsRequest",
    "OAuthCallback",
    "SessionResponse",
    "Coach",
    "CoachResponse",
    "RatingRequest",
    "WelcomeEmailRequest",
    "NotificationResponse",
    "EmailAttachment",
    "CustomEmailRequest",
    "CustomEmailResponse",
]
