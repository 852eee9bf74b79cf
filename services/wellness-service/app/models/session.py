"""
Session Models
Identity, session and profile document models
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """Application-level roles"""
    USER = "user"
    COACH = "coach"


class AuthProvider(str, Enum):
    """How the identity was first created"""
    PASSWORD = "password"
    GOOGLE = "google"


class Identity(BaseModel):
    """Identity as reported by the identity provider"""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    # Bearer token the provider issued with this sign-in, when it issued one
    access_token: Optional[str] = Field(default=None, repr=False, exclude=True)


class Session(BaseModel):
    """The currently authenticated identity, with its resolved role"""

    model_config = ConfigDict(frozen=True)

    email: str
    uid: str
    role: Role = Role.USER
    coach_id: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    @classmethod
    def from_profile(cls, identity: Identity, profile: Optional["ProfileDocument"]) -> "Session":
        """Build a session from a stored profile; an absent profile yields the default role"""
        if profile is None:
            return cls(
                email=identity.email,
                uid=identity.uid,
                display_name=identity.display_name,
                photo_url=identity.photo_url,
            )
        return cls(
            email=identity.email,
            uid=identity.uid,
            role=profile.role,
            coach_id=profile.coach_id,
            display_name=profile.display_name or identity.display_name,
            photo_url=profile.photo_url or identity.photo_url,
        )


class ProfileDocument(BaseModel):
    """Persisted profile, one per identity, keyed by uid"""

    email: str
    role: Role = Role.USER
    coach_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    auth_provider: AuthProvider = AuthProvider.PASSWORD
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator('role', mode='before')
    @classmethod
    def default_missing_role(cls, v):
        # Documents written without a role are treated as ordinary users
        return v or Role.USER

    @field_validator('coach_id', mode='before')
    @classmethod
    def coerce_coach_id(cls, v):
        if v is None:
            return None
        return str(v)

    def to_fields(self) -> Dict[str, Any]:
        """Fields written to the document store"""
        fields = self.model_dump(mode='json')
        if self.auth_provider == AuthProvider.PASSWORD:
            # Password registrations carry no social profile fields
            for key in ('auth_provider', 'display_name', 'photo_url'):
                fields.pop(key)
        return fields


class CredentialsRequest(BaseModel):
    """Request model for register and login"""

    email: EmailStr
    password: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if not v:
            raise ValueError('Password is required')
        return v


class OAuthCallback(BaseModel):
    """Result of the provider-driven interactive sign-in, as returned to the redirect URL"""

    code: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


class SessionResponse(BaseModel):
    """Response model for session-returning endpoints"""

    success: bool = True
    signed_in: bool
    session: Optional[Session] = None
    access_token: Optional[str] = None
    token_type: str = "bearer"
