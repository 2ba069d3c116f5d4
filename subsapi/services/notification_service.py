"""
Notification Service
Fans a message out to SMS and email; every send is attempted, logged and
recorded, and nothing here ever fails the caller's operation
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.models.notification import Notification, NotifyKind
from subsapi.services.twilio_service import TwilioService, twilio_service
from subsapi.utils.email_brevo import BrevoEmailService, email_service

logger = logging.getLogger(__name__)


class ChannelResult(BaseModel):
    kind: NotifyKind
    recipient: str
    success: bool
    provider_msg_id: Optional[str] = None
    error: Optional[str] = None


class NotificationOutcome(BaseModel):
    """Result of a best-effort send; inspect it for logging, never treat it as failure"""
    results: List[ChannelResult] = []

    @property
    def attempted(self) -> bool:
        return bool(self.results)

    @property
    def any_succeeded(self) -> bool:
        return any(r.success for r in self.results)

    @property
    def failures(self) -> List[ChannelResult]:
        return [r for r in self.results if not r.success]


class NotificationService:
    def __init__(self, sms: Optional[TwilioService] = None, email: Optional[BrevoEmailService] = None):
        self.sms = sms or twilio_service
        self.email = email or email_service

    async def _attempt(self, kind: NotifyKind, recipient: str, send) -> ChannelResult:
        try:
            msg_id = await send
            return ChannelResult(kind=kind, recipient=recipient, success=True, provider_msg_id=msg_id)
        except Exception as e:
            # Transport failures of any kind stop at this boundary
            logger.warning(f"{kind.value} to {recipient} failed: {e}")
            return ChannelResult(kind=kind, recipient=recipient, success=False, error=str(e))

    async def _fan_out(self, sends) -> NotificationOutcome:
        results = await asyncio.gather(*(self._attempt(kind, to, coro) for kind, to, coro in sends))
        return NotificationOutcome(results=list(results))

    def record(
        self,
        db: AsyncSession,
        outcome: NotificationOutcome,
        user_id: Optional[UUID] = None,
        payment_id: Optional[UUID] = None,
    ) -> None:
        """Stage a notification log row per attempt; the caller commits"""
        for r in outcome.results:
            db.add(Notification(
                user_id=user_id,
                payment_id=payment_id,
                kind=r.kind.value,
                recipient=r.recipient,
                provider_msg_id=r.provider_msg_id,
                success=r.success,
                error_message=r.error,
            ))

    async def send_payment_link(
        self,
        email: Optional[str],
        phone: Optional[str],
        payment_url: str,
        plan_name: str,
        amount: int,
    ) -> NotificationOutcome:
        sends = []
        if phone:
            sends.append((NotifyKind.SMS_PAYMENT_LINK, phone,
                          self.sms.send_payment_link(phone, payment_url, plan_name, amount)))
        if email:
            sends.append((NotifyKind.EMAIL_PAYMENT_LINK, email,
                          self.email.send_payment_link(email, payment_url, plan_name, amount)))
        return await self._fan_out(sends)

    async def send_subscription_activated(
        self,
        email: Optional[str],
        phone: Optional[str],
        plan_name: str,
        end_date: datetime,
    ) -> NotificationOutcome:
        sends = []
        if phone:
            sends.append((NotifyKind.SMS_SUBSCRIPTION_ACTIVATED, phone,
                          self.sms.send_subscription_activated(phone, plan_name, end_date)))
        if email:
            sends.append((NotifyKind.EMAIL_SUBSCRIPTION_ACTIVATED, email,
                          self.email.send_subscription_activated(email, plan_name, end_date)))
        return await self._fan_out(sends)

    async def send_otp(self, phone: str, code: str, minutes: int) -> NotificationOutcome:
        return await self._fan_out([(NotifyKind.SMS_OTP, phone, self.sms.send_otp(phone, code, minutes))])


# Global service instance
notification_service = NotificationService()
