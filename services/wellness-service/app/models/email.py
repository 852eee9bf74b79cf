"""
Email Models
Pydantic models for welcome and feedback email operations
"""

import base64
import binascii

from pydantic import BaseModel, EmailStr, field_validator
from typing import List, Optional


class WelcomeEmailRequest(BaseModel):
    """Request model for the welcome notification"""

    email: EmailStr


class NotificationResponse(BaseModel):
    """Response model for the welcome notification"""

    success: bool
    error: Optional[str] = None


class EmailAttachment(BaseModel):
    """Base64-encoded attachment"""

    content: str
    filename: str
    type: Optional[str] = None

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError('Attachment content must be base64 encoded')
        return v

    @field_validator('filename')
    @classmethod
    def validate_filename(cls, v):
        if not v or not v.strip():
            raise ValueError('Attachment filename is required')
        return v.strip()


class CustomEmailRequest(BaseModel):
    """Request model for user feedback emails"""

    to: Optional[EmailStr] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    attachments: Optional[List[EmailAttachment]] = None

    @field_validator('subject')
    @classmethod
    def validate_subject(cls, v):
        if v is None:
            return v
        if len(v) > 200:
            raise ValueError('Subject too long (max 200 characters)')
        if '\r' in v or '\n' in v:
            raise ValueError('Subject must be a single line')
        return v

    def missing_fields(self) -> List[str]:
        return [name for name in ('to', 'subject', 'message') if not getattr(self, name)]


class CustomEmailResponse(BaseModel):
    """Response model for user feedback emails"""

    success: bool
    message: str
    message_id: Optional[str] = None
