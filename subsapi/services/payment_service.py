"""
Payment Service
Creates gateway payments and drives their verification state machine

    PENDING -> COMPLETED
    PENDING -> FAILED

COMPLETED and FAILED are terminal for a row; paying again means a new payment.
"""

import asyncio
import logging
import weakref
from typing import List, NamedTuple, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.config import settings
from subsapi.models.payment import Payment, PaymentStatus
from subsapi.models.plan import Plan
from subsapi.models.subscription import Subscription
from subsapi.services.gateway_credential_service import (
    GatewayCredentialService, gateway_credential_service,
)
from subsapi.services.gateways import GatewayRegistry, gateway_registry
from subsapi.services.notification_service import NotificationService, notification_service
from subsapi.utils.database import utcnow, commit_side_effect
from subsapi.utils.errors import GatewayError, NotFoundError

logger = logging.getLogger(__name__)


class Verification(NamedTuple):
    payment: Payment
    newly_completed: bool


class PaymentService:
    """Bridges subscriptions, gateway adapters and the payments table"""

    def __init__(
        self,
        registry: Optional[GatewayRegistry] = None,
        notifications: Optional[NotificationService] = None,
        credentials: Optional[GatewayCredentialService] = None,
    ):
        self.registry = registry or gateway_registry
        self.notifications = notifications or notification_service
        self.credentials = credentials or gateway_credential_service
        # One lock per authority being verified; entries vanish when unused
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, authority: str) -> asyncio.Lock:
        lock = self._locks.get(authority)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[authority] = lock
        return lock

    async def _gateway_for(self, db: AsyncSession, gateway: str, user_id: UUID):
        config = None
        if gateway in self.registry:
            config = await self.credentials.config_for(db, user_id, gateway)
        return self.registry.resolve(gateway, config)

    async def create_payment(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        amount: int,
        gateway: str,
        user_email: Optional[str] = None,
        user_phone: Optional[str] = None,
    ) -> Payment:
        """Open a payment with the gateway for a subscription and send the link.

        The payment link is sent by SMS and/or email; delivery problems are
        recorded in the notification log and never fail this call.
        """
        result = await db.execute(
            select(Subscription, Plan)
            .join(Plan, Plan.id == Subscription.plan_id)
            .where(Subscription.id == subscription_id)
        )
        row = result.first()
        if not row:
            raise NotFoundError("Subscription")
        subscription, plan = row

        adapter = await self._gateway_for(db, gateway, subscription.user_id)

        created = await adapter.create_payment(
            amount=amount,
            description=f"Subscription: {plan.name}",
            callback_url=f"{settings.API_BASE_URL}/api/payment/callback",
            email=user_email,
            mobile=user_phone,
            metadata={
                "subscription_id": str(subscription.id),
                "plan_id": str(plan.id),
            },
        )

        payment = Payment(
            subscription_id=subscription.id,
            amount=amount,
            currency=plan.currency,
            gateway=gateway.strip().lower(),
            authority=created.authority,
            payment_url=created.payment_url,
            status=PaymentStatus.PENDING.value,
            user_email=user_email,
            user_phone=user_phone,
            meta={
                "gateway_tx_id": created.gateway_tx_id,
                "message": created.message,
            },
        )
        db.add(payment)
        await db.commit()
        logger.info(f"Payment {payment.id} created via {adapter.name}: authority={payment.authority}")

        outcome = await self.notifications.send_payment_link(
            user_email, user_phone, created.payment_url, plan.name, amount
        )
        self.notifications.record(db, outcome, user_id=subscription.user_id, payment_id=payment.id)
        if outcome.any_succeeded:
            payment.notification_sent = True
        if not await commit_side_effect(db, f"payment {payment.id} notification log"):
            await db.refresh(payment)

        return payment

    async def verify(self, db: AsyncSession, authority: str, status: Optional[str] = None) -> Verification:
        """Verify a payment and report whether this call completed it.

        Only one verification per authority runs at a time in this process, so
        the upstream verify is called at most once for a completed payment.
        """
        async with self._lock_for(authority):
            payment = await self._find_by_authority(db, authority, fresh=True)
            if not payment:
                raise NotFoundError("Payment")

            if status and status.strip().lower() in settings.CANCELLED_PAYMENT_STATUSES:
                if payment.status == PaymentStatus.PENDING.value:
                    payment.status = PaymentStatus.FAILED.value
                    await db.commit()
                    logger.info(f"Payment {payment.id} cancelled by gateway callback (status={status})")
                raise GatewayError("Payment was cancelled or failed", code=status)

            if payment.status == PaymentStatus.COMPLETED.value:
                return Verification(payment, False)

            if payment.status == PaymentStatus.FAILED.value:
                raise GatewayError("Payment has already failed; create a new payment to retry")

            result = await db.execute(select(Subscription.user_id).where(Subscription.id == payment.subscription_id))
            user_id = result.scalar_one()
            adapter = await self._gateway_for(db, payment.gateway, user_id)

            try:
                verified = await adapter.verify_payment(payment.authority, payment.amount)
            except Exception:
                payment.status = PaymentStatus.FAILED.value
                await db.commit()
                logger.warning(f"Payment {payment.id} failed verification with {payment.gateway}")
                raise

            now = utcnow()
            payment.status = PaymentStatus.COMPLETED.value
            payment.gateway_tx_id = verified.ref_id
            payment.paid_at = now
            payment.verified_at = now
            payment.meta = {
                **(payment.meta or {}),
                "ref_id": verified.ref_id,
                "card_pan": verified.card_pan,
                "card_hash": verified.card_hash,
                "fee_type": verified.fee_type,
                "fee": verified.fee,
            }
            await db.commit()
            logger.info(f"Payment {payment.id} completed: ref_id={verified.ref_id}")
            return Verification(payment, True)

    async def verify_payment(self, db: AsyncSession, authority: str, status: Optional[str] = None) -> Payment:
        return (await self.verify(db, authority, status)).payment

    async def _find_by_authority(self, db: AsyncSession, authority: str, fresh: bool = False) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.authority == authority)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_payment_by_authority(self, db: AsyncSession, authority: str) -> Optional[Payment]:
        return await self._find_by_authority(db, authority)

    async def get_payments_by_subscription(self, db: AsyncSession, subscription_id: UUID) -> List[Payment]:
        result = await db.execute(
            select(Payment)
            .where(Payment.subscription_id == subscription_id)
            .order_by(Payment.created_at.desc())
        )
        return list(result.scalars().all())


# Global service instance
payment_service = PaymentService()
