"""
Email Service
Composes and sends welcome and user feedback emails
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo
import logging

from app.models.email import EmailAttachment
from app.services.template_service import TemplateService, get_template_service
from app.utils.config import get_app_config
from app.utils.smtp_client import EmailMessage, SMTPClient, get_smtp_client

logger = logging.getLogger(__name__)


class EmailService:
    """Welcome and feedback email composition"""

    def __init__(
        self,
        smtp_client: Optional[SMTPClient] = None,
        template_service: Optional[TemplateService] = None,
    ):
        self.smtp_client = smtp_client or get_smtp_client()
        self.template_service = template_service or get_template_service()
        self.app_config = get_app_config()

    async def send_welcome_email(self, email: str) -> Dict[str, Any]:
        """Send the welcome email to a newly created identity"""
        rendered = self.template_service.render_template("welcome", {
            "first_name": email.split('@')[0].replace('.', ' ').title(),
            "login_url": f"{self.app_config.frontend_url.rstrip('/')}/login",
        })

        message = EmailMessage(
            to_emails=[email],
            subject=rendered["subject"],
            html_content=rendered["html_content"],
            text_content=rendered["text_content"],
        )
        result = await self.smtp_client.send_email(message)
        logger.info(f"✅ Welcome email sent to {email}")
        return result

    async def send_feedback_email(
        self,
        sender_email: str,
        to: str,
        subject: str,
        message: str,
        attachments: Optional[List[EmailAttachment]] = None,
        submitted_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Send a user feedback email on behalf of a signed-in user

        Args:
            sender_email: Email of the signed-in submitter
            to: Recipient address
            subject: Feedback subject (prefixed with [User Feedback])
            message: Feedback body, also used as the plain-text part
            attachments: Base64-encoded attachments
            submitted_at: Submission time, defaults to now
        """
        submitted_at = submitted_at or datetime.now(ZoneInfo(self.app_config.feedback_timezone))
        local_time = submitted_at.astimezone(ZoneInfo(self.app_config.feedback_timezone))

        rendered = self.template_service.render_template("feedback", {
            "subject": subject,
            "message": message,
            "sender_email": sender_email,
            "submitted_at": local_time.strftime("%d/%m/%Y, %I:%M:%S %p"),
        })

        logger.info(f"📮 Preparing feedback email to: {to} from {sender_email}")
        if attachments:
            logger.info(f"📎 Includes {len(attachments)} attachment(s)")

        email_message = EmailMessage(
            to_emails=[to],
            subject=rendered["subject"],
            html_content=rendered["html_content"],
            text_content=message,
            attachments=[attachment.model_dump() for attachment in attachments or []],
        )
        return await self.smtp_client.send_email(email_message)


# Global instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get email service singleton"""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
