"""
Notification Service Client
HTTP client for the welcome-notification endpoint
"""

import httpx
import logging
from typing import Dict, Any, Optional

from app.utils.config import get_app_config

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Welcome notification could not be delivered"""
    pass


class NotificationClient:
    """HTTP client for notification endpoints"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        app_config = get_app_config()
        self.base_url = base_url or app_config.notification_service_url
        self.timeout = httpx.Timeout(timeout or app_config.notification_timeout)

    async def send_welcome_email(self, email: str) -> Dict[str, Any]:
        """
        Request a welcome email for a newly created identity

        Single attempt, no retry.

        Args:
            email: Recipient email address

        Returns:
            Response body: {"success": bool, "error"?: str}

        Raises:
            NotificationError: transport failure, HTTP error, or success=false
        """
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
                response = await client.post('/api/v1/emails/welcome', json={"email": email})
                response.raise_for_status()
                result = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"❌ HTTP error sending welcome email: {e.response.status_code} - {e.response.text}")
            raise NotificationError(f"Failed to send welcome email: HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error(f"❌ Request error sending welcome email: {e}")
            raise NotificationError(f"Failed to connect to notification service: {str(e)}")

        if not result.get("success"):
            raise NotificationError(result.get("error") or "Notification service reported failure")

        logger.info(f"✅ Welcome email sent to {email}")
        return result


# Global notification client instance
_notification_client: Optional[NotificationClient] = None


def get_notification_client() -> NotificationClient:
    """Get notification client instance"""
    global _notification_client
    if _notification_client is None:
        _notification_client = NotificationClient()
    return _notification_client
