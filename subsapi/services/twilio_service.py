"""
Twilio Service for SMS delivery
"""
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException
import asyncio
import logging
from typing import Optional

from subsapi.config import settings

logger = logging.getLogger(__name__)


class SmsDeliveryError(Exception):
    """Raised when the SMS provider rejects or fails a send"""


class TwilioService:
    def __init__(self, account_sid: Optional[str] = None, auth_token: Optional[str] = None,
                 from_number: Optional[str] = None):
        self.account_sid = account_sid or settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or settings.TWILIO_AUTH_TOKEN
        self.from_number = from_number or settings.TWILIO_FROM_NUMBER
        
        if self.account_sid and self.auth_token:
            self.client = Client(self.account_sid, self.auth_token)
        else:
            self.client = None
            logger.warning("Twilio credentials not configured - SMS will only be logged")

    async def send_sms(self, to_number: str, body: str) -> Optional[str]:
        """Send an SMS message and return the provider message SID.

        Without credentials the message is logged and None is returned. Provider
        failures raise SmsDeliveryError; callers decide whether that matters.
        """
        if not self.client:
            logger.info(f"[SMS] Would send to {to_number}: {len(body)} chars")
            return None
        
        try:
            # The Twilio SDK is blocking
            message = await asyncio.to_thread(
                self.client.messages.create,
                body=body,
                from_=self.from_number,
                to=to_number,
            )
        except TwilioRestException as e:
            logger.error(f"Failed to send SMS to {to_number}: {e.msg} (code {e.code})")
            raise SmsDeliveryError(f"Twilio error {e.code}: {e.msg}") from e
        
        logger.info(f"SMS sent to {to_number}: {message.sid}")
        return message.sid

    async def send_payment_link(self, phone: str, payment_url: str, plan_name: str, amount: int) -> Optional[str]:
        message = (
            f"{settings.APP_NAME}\n"
            f"Subscription: {plan_name}\n"
            f"Amount: {amount:,}\n"
            f"Pay here: {payment_url}"
        )
        return await self.send_sms(phone, message)

    async def send_subscription_activated(self, phone: str, plan_name: str, end_date) -> Optional[str]:
        message = (
            f"{settings.APP_NAME}\n"
            f"Your {plan_name} subscription is now active.\n"
            f"Expires on: {end_date:%Y-%m-%d}"
        )
        return await self.send_sms(phone, message)

    async def send_otp(self, phone: str, code: str, minutes: int) -> Optional[str]:
        message = f"{settings.APP_NAME} login code: {code}\nValid for {minutes} minutes."
        return await self.send_sms(phone, message)


# Singleton instance
twilio_service = TwilioService()
