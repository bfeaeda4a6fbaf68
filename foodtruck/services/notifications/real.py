"""
Real Notification Service

SMS through Twilio, email through SendGrid. Either channel may be left
unconfigured; sends on it then fail with a clear message.
"""

import logging
from typing import Any, Optional

from python_http_client.exceptions import HTTPError as SendGridHTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from foodtruck.core.config import Settings
from foodtruck.services.notifications.base import BaseNotificationService, NotificationResult

logger = logging.getLogger(__name__)

SENDGRID_ACCEPTED = (200, 201, 202)


class RealNotificationService(BaseNotificationService):
    """
    Twilio + SendGrid notifications.

    Clients are built from ``settings`` unless passed in.
    """

    def __init__(
        self,
        settings: Settings,
        twilio_client: Optional[Any] = None,
        sendgrid_client: Optional[Any] = None,
    ):
        self.twilio_from_number = settings.twilio_phone_number
        self.sendgrid_from_email = settings.sendgrid_from_email

        if twilio_client is None and settings.twilio_account_sid and settings.twilio_auth_token:
            twilio_client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
        if sendgrid_client is None and settings.sendgrid_api_key:
            sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)

        self.twilio_client = twilio_client
        self.sendgrid_client = sendgrid_client

        if self.twilio_client is None:
            logger.warning("Twilio credentials not configured, SMS disabled")
        if self.sendgrid_client is None:
            logger.warning("SendGrid credentials not configured, email disabled")

    @property
    def provider_name(self) -> str:
        return "real"

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        if self.twilio_client is None:
            return NotificationResult(success=False, error_message="Twilio not configured", provider="twilio")

        try:
            sent = self.twilio_client.messages.create(body=message, from_=self.twilio_from_number, to=to_phone)
        except (TwilioException, OSError) as e:
            logger.error(f"Twilio: SMS to {to_phone} failed - {e}")
            return NotificationResult(success=False, error_message=str(e), provider="twilio")

        logger.info(f"Twilio: SMS to {to_phone} accepted as {sent.sid}")
        return NotificationResult(success=True, message_id=sent.sid, provider="twilio")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        if self.sendgrid_client is None:
            return NotificationResult(success=False, error_message="SendGrid not configured", provider="sendgrid")

        mail = Mail(
            from_email=self.sendgrid_from_email,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        # URLError and socket timeouts are OSErrors
        try:
            response = self.sendgrid_client.send(mail)
        except (SendGridHTTPError, OSError) as e:
            logger.error(f"SendGrid: email to {to_email} failed - {e}")
            return NotificationResult(success=False, error_message=str(e), provider="sendgrid")

        accepted = response.status_code in SENDGRID_ACCEPTED
        if not accepted:
            logger.warning(f"SendGrid: email to {to_email} answered {response.status_code}")
        return NotificationResult(
            success=accepted,
            message_id=response.headers.get("X-Message-Id"),
            error_message=None if accepted else f"SendGrid answered {response.status_code}",
            provider="sendgrid",
        )

    async def health_check(self) -> bool:
        """Healthy when at least one channel is configured."""
        return self.twilio_client is not None or self.sendgrid_client is not None
