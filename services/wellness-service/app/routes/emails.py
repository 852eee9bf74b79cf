"""
Email API Routes
Welcome notification and user feedback endpoints
"""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse
import logging

from app.models.email import (
    WelcomeEmailRequest, NotificationResponse, CustomEmailRequest, CustomEmailResponse
)
from app.utils.dependencies import CurrentSession, EmailServiceDep
from app.utils.smtp_client import SMTPError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/welcome", response_model=NotificationResponse)
async def send_welcome_email(request: WelcomeEmailRequest, email_service: EmailServiceDep):
    """
    Send the welcome email

    Always answers with {success, error?}; delivery failures use status 503.
    """
    try:
        await email_service.send_welcome_email(request.email)
        return NotificationResponse(success=True)

    except SMTPError as e:
        logger.error(f"SMTP error sending welcome email: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=NotificationResponse(success=False, error=str(e)).model_dump()
        )
    except Exception as e:
        logger.error(f"Unexpected error sending welcome email: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=NotificationResponse(success=False, error="Internal server error").model_dump()
        )


@router.post("/custom", response_model=CustomEmailResponse)
async def send_custom_email(
    request: CustomEmailRequest,
    session: CurrentSession,
    email_service: EmailServiceDep
):
    """
    Send a user feedback email

    Only signed-in users may send; the submitter's email is included in the body.
    """
    missing = request.missing_fields()
    if missing:
        logger.info(f"❌ Missing required fields: {', '.join(missing)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: to, subject, or message"
        )

    try:
        result = await email_service.send_feedback_email(
            sender_email=session.email,
            to=str(request.to),
            subject=request.subject,
            message=request.message,
            attachments=request.attachments,
        )
        logger.info("🎉 Email sent successfully!")
        return CustomEmailResponse(
            success=True,
            message="Email sent successfully",
            message_id=result.get("message_id")
        )

    except SMTPError as e:
        logger.error(f"❌ Failed to send email: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to send email: {str(e)}"
        )
    except Exception as e:
        logger.error(f"Unexpected error sending feedback email: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )
