"""
Webhook Service
User-registered endpoints and signed event delivery with retries
"""

import asyncio
import logging
import secrets
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from uuid import UUID

import httpx
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.config import settings
from subsapi.models.webhook import DeliveryStatus, Webhook, WebhookDelivery
from subsapi.utils.database import utcnow, commit_side_effect
from subsapi.utils.security import canonical_json, sign_payload

logger = logging.getLogger(__name__)


class DeliveryOutcome(BaseModel):
    webhook_id: UUID
    delivery_id: Optional[UUID] = None
    success: bool
    attempts: int
    response_status: Optional[int] = None
    error: Optional[str] = None


class WebhookService:

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = settings.WEBHOOK_TIMEOUT_SEC,
        retry_delays: Sequence[float] = settings.WEBHOOK_RETRY_DELAYS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.transport = transport
        self.timeout = timeout
        self.retry_delays = tuple(retry_delays)
        self.sleep = sleep

    # Endpoint management

    async def list(self, db: AsyncSession, user_id: UUID) -> List[Webhook]:
        result = await db.execute(
            select(Webhook).where(Webhook.user_id == user_id).order_by(Webhook.created_at.desc())
        )
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, user_id: UUID, webhook_id: UUID) -> Optional[Webhook]:
        result = await db.execute(
            select(Webhook).where(Webhook.id == webhook_id, Webhook.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        user_id: UUID,
        url: str,
        event_types: Optional[List[str]] = None,
        secret: Optional[str] = None,
    ) -> Webhook:
        webhook = Webhook(
            user_id=user_id,
            url=url,
            secret=secret or secrets.token_hex(32),
            event_types=list(event_types or []),
            is_active=True,
        )
        db.add(webhook)
        await db.commit()
        logger.info(f"Webhook {webhook.id} registered for user {user_id}")
        return webhook

    async def update(
        self,
        db: AsyncSession,
        user_id: UUID,
        webhook_id: UUID,
        url: Optional[str] = None,
        event_types: Optional[List[str]] = None,
        is_active: Optional[bool] = None,
    ) -> Optional[Webhook]:
        webhook = await self.get(db, user_id, webhook_id)
        if not webhook:
            return None
        if url is not None:
            webhook.url = url
        if event_types is not None:
            webhook.event_types = list(event_types)
        if is_active is not None:
            webhook.is_active = is_active
        webhook.updated_at = utcnow()
        await db.commit()
        return webhook

    async def remove(self, db: AsyncSession, user_id: UUID, webhook_id: UUID) -> bool:
        webhook = await self.get(db, user_id, webhook_id)
        if not webhook:
            return False
        await db.delete(webhook)
        await db.commit()
        logger.info(f"Webhook {webhook_id} removed")
        return True

    # Delivery

    @staticmethod
    def _subscribed(webhook: Webhook, event_type: str) -> bool:
        return not webhook.event_types or event_type in webhook.event_types

    async def dispatch(
        self,
        db: AsyncSession,
        user_id: UUID,
        event_type: str,
        payload: Dict[str, Any],
    ) -> List[DeliveryOutcome]:
        """Deliver an event to every active webhook of the user listening for it.

        Each delivery is stored before the first attempt and updated after
        every attempt. Failures end up in the returned outcomes, never raised.
        """
        try:
            result = await db.execute(
                select(Webhook).where(Webhook.user_id == user_id, Webhook.is_active.is_(True))
            )
            # Plain values so a rolled-back side commit cannot expire them mid-loop
            targets = [
                (h.id, h.url, h.secret)
                for h in result.scalars().all()
                if self._subscribed(h, event_type)
            ]
        except Exception as e:
            logger.error(f"Could not load webhooks for user {user_id}: {e}")
            return []

        outcomes = []
        for hook_id, url, secret in targets:
            outcomes.append(await self._deliver(db, hook_id, url, secret, event_type, payload))
        return outcomes

    async def _deliver(
        self,
        db: AsyncSession,
        hook_id: UUID,
        url: str,
        secret: str,
        event_type: str,
        payload: Dict[str, Any],
    ) -> DeliveryOutcome:
        signature = sign_payload(secret, payload)
        delivery = WebhookDelivery(
            webhook_id=hook_id,
            event_type=event_type,
            payload=payload,
            signature=signature,
            status=DeliveryStatus.PENDING.value,
            attempt_count=0,
        )
        db.add(delivery)
        persisted = await commit_side_effect(db, f"webhook delivery for {hook_id}")

        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Event": event_type,
            "X-Webhook-Signature": signature,
        }
        body = canonical_json(payload)

        attempts = 0
        response_status = None
        error = None
        success = False
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            for delay in self.retry_delays:
                if delay:
                    await self.sleep(delay)
                attempts += 1
                try:
                    response = await client.post(url, content=body, headers=headers)
                    response_status = response.status_code
                    if response.is_success:
                        success = True
                        error = None
                    else:
                        error = f"HTTP {response.status_code}"
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    response_status = None
                    error = str(e) or e.__class__.__name__

                if persisted:
                    delivery.attempt_count = attempts
                    delivery.last_attempt_at = utcnow()
                    delivery.response_status = response_status
                    delivery.last_error = error
                    if success:
                        delivery.status = DeliveryStatus.SUCCESS.value
                    elif attempts == len(self.retry_delays):
                        delivery.status = DeliveryStatus.FAILED.value
                    persisted = await commit_side_effect(db, f"webhook delivery {delivery.id}")

                if success:
                    break
                logger.warning(f"Webhook {hook_id} attempt {attempts} failed: {error}")

        if success:
            logger.info(f"Webhook {hook_id} delivered {event_type} after {attempts} attempt(s)")
        else:
            logger.error(f"Webhook {hook_id} gave up on {event_type} after {attempts} attempt(s)")

        return DeliveryOutcome(
            webhook_id=hook_id,
            delivery_id=delivery.id if persisted else None,
            success=success,
            attempts=attempts,
            response_status=response_status,
            error=error,
        )


# Global service instance
webhook_service = WebhookService()
