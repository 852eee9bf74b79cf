"""
SMTP Client
Builds MIME messages for welcome and feedback emails and hands them to aiosmtplib
"""

import base64
import binascii
import aiosmtplib
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import List, Optional, Dict, Any
import logging
from datetime import datetime, timezone

from app.utils.config import get_smtp_config

logger = logging.getLogger(__name__)


class SMTPError(Exception):
    """Message could not be built or delivered"""
    pass


class EmailMessage:
    """Outgoing email: recipients, subject, body parts and attachments"""

    def __init__(
        self,
        to_emails: List[str],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ):
        if isinstance(to_emails, str):
            to_emails = [to_emails]
        if not to_emails:
            raise ValueError("At least one recipient email is required")
        if not subject:
            raise ValueError("Subject is required")
        if not (html_content or text_content):
            raise ValueError("Either HTML or text content is required")

        self.to_emails = list(to_emails)
        self.subject = subject
        self.html_content = html_content
        self.text_content = text_content
        self.from_email = from_email
        self.from_name = from_name
        self.attachments = attachments or []


class SMTPClient:
    """Single-attempt SMTP delivery"""

    def __init__(self, config=None):
        self.config = config or get_smtp_config()

    async def send_email(self, email_message: EmailMessage) -> Dict[str, Any]:
        """
        Send email

        Returns:
            Dictionary with message_id, recipients and sent_at

        Raises:
            SMTPError: message could not be built or delivered
        """
        mime_message = self._create_mime_message(email_message)
        try:
            await self._send_mime_message(mime_message, email_message.to_emails)
        except Exception as e:
            logger.error(f"❌ Email send failed: {e}")
            raise SMTPError(f"Failed to send email: {e}") from e

        logger.info(f"Email {mime_message['Message-ID']} sent to {len(email_message.to_emails)} recipient(s)")
        return {
            "success": True,
            "message_id": mime_message["Message-ID"],
            "recipients": email_message.to_emails,
            "sent_at": datetime.now(timezone.utc).isoformat()
        }

    def _create_mime_message(self, email_message: EmailMessage) -> MIMEMultipart:
        """
        Build the MIME tree

        Text and HTML go in a multipart/alternative part; attachments wrap it
        in multipart/mixed.
        """
        sender = email_message.from_email or self.config.from_email
        sender_name = email_message.from_name or self.config.from_name

        parts = []
        if email_message.text_content:
            parts.append(MIMEText(email_message.text_content, 'plain', 'utf-8'))
        if email_message.html_content:
            parts.append(MIMEText(email_message.html_content, 'html', 'utf-8'))

        body = MIMEMultipart('alternative' if len(parts) > 1 else 'mixed', _subparts=parts)
        if email_message.attachments:
            message = MIMEMultipart('mixed', _subparts=[body])
            for attachment in email_message.attachments:
                message.attach(self._create_attachment(attachment))
        else:
            message = body

        message['From'] = formataddr((sender_name, sender)) if sender_name else sender
        message['To'] = ', '.join(email_message.to_emails)
        message['Subject'] = email_message.subject
        message['Message-ID'] = make_msgid(domain=sender.rpartition('@')[2])
        return message

    @staticmethod
    def _create_attachment(attachment: Dict[str, Any]) -> MIMEBase:
        """MIME part for a base64-encoded attachment"""
        filename = attachment.get('filename', 'attachment')
        try:
            payload = base64.b64decode(attachment['content'], validate=True)
        except (binascii.Error, ValueError) as e:
            raise SMTPError(f"Attachment {filename} is not valid base64") from e

        maintype, _, subtype = (attachment.get('type') or 'application/octet-stream').partition('/')
        part = MIMEBase(maintype, subtype or 'octet-stream')
        part.set_payload(payload)
        encoders.encode_base64(part)
        part.add_header('Content-Disposition', 'attachment', filename=filename)
        return part

    async def _send_mime_message(self, message: MIMEMultipart, recipients: List[str]):
        await aiosmtplib.send(
            message,
            recipients=recipients,
            hostname=self.config.host,
            port=self.config.port,
            use_tls=self.config.use_tls,
            username=self.config.username or None,
            password=self.config.password or None,
            timeout=self.config.timeout,
        )

    async def test_connection(self) -> Dict[str, Any]:
        """Open and close a connection to the relay"""
        result = {"host": self.config.host, "port": self.config.port}
        smtp = aiosmtplib.SMTP(
            hostname=self.config.host,
            port=self.config.port,
            use_tls=self.config.use_tls,
            timeout=self.config.timeout
        )
        try:
            await smtp.connect()
            await smtp.quit()
        except Exception as e:
            return {"success": False, "error": str(e), **result}
        return {"success": True, **result}


# Global SMTP client instance
_smtp_client: Optional[SMTPClient] = None


def get_smtp_client() -> SMTPClient:
    """Get SMTP client instance"""
    global _smtp_client
    if _smtp_client is None:
        _smtp_client = SMTPClient()
    return _smtp_client
