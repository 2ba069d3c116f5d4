"""
Subscription Service
Owns the subscription lifecycle and the plan catalog

A subscription is created PENDING together with its first payment, becomes
ACTIVE when the caller activates it after a verified payment, and can be
CANCELLED. Expiry is decided by comparing end_date with the current time;
nothing here flips rows to EXPIRED.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.config import settings
from subsapi.models.payment import Payment
from subsapi.models.plan import Plan
from subsapi.models.subscription import Subscription, SubscriptionStatus
from subsapi.models.user import User
from subsapi.services.audit_service import AuditService, audit_service
from subsapi.services.notification_service import NotificationService, notification_service
from subsapi.services.payment_service import PaymentService, payment_service
from subsapi.services.webhook_service import WebhookService, webhook_service
from subsapi.utils.database import utcnow, commit_side_effect
from subsapi.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class SubscriptionService:
    def __init__(
        self,
        payments: Optional[PaymentService] = None,
        notifications: Optional[NotificationService] = None,
        webhooks: Optional[WebhookService] = None,
        audit: Optional[AuditService] = None,
    ):
        self.payments = payments or payment_service
        self.notifications = notifications or notification_service
        self.webhooks = webhooks or webhook_service
        self.audit = audit or audit_service

    async def _get_plan(self, db: AsyncSession, plan_id: UUID) -> Plan:
        result = await db.execute(select(Plan).where(Plan.id == plan_id))
        plan = result.scalar_one_or_none()
        if not plan:
            raise NotFoundError("Plan")
        return plan

    async def _get(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        result = await db.execute(select(Subscription).where(Subscription.id == subscription_id))
        subscription = result.scalar_one_or_none()
        if not subscription:
            raise NotFoundError("Subscription")
        return subscription

    async def create_subscription(
        self,
        db: AsyncSession,
        user_id: UUID,
        plan_id: UUID,
        gateway: Optional[str] = None,
        auto_renew: bool = False,
        user_email: Optional[str] = None,
        user_phone: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a PENDING subscription and its first payment.

        If the gateway refuses the payment the error propagates and the
        subscription stays PENDING without a payment; retry_payment opens a
        new one.
        """
        plan = await self._get_plan(db, plan_id)
        if not plan.is_active:
            raise ValidationError("This plan is not currently available")

        result = await db.execute(select(User.id).where(User.id == user_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("User")

        # Reject unknown gateways before a subscription row exists
        gateway = self.payments.registry.validate(gateway or settings.DEFAULT_GATEWAY)

        subscription = Subscription(
            user_id=user_id,
            plan_id=plan.id,
            status=SubscriptionStatus.PENDING.value,
            auto_renew=auto_renew,
        )
        db.add(subscription)
        await db.commit()
        logger.info(f"Subscription {subscription.id} created for user {user_id} on plan {plan.name}")

        payment = await self.payments.create_payment(
            db, subscription.id, plan.price, gateway, user_email, user_phone
        )
        return {"subscription": subscription, "payment": payment, "plan": plan}

    async def retry_payment(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        gateway: Optional[str] = None,
        user_email: Optional[str] = None,
        user_phone: Optional[str] = None,
    ) -> Payment:
        """Open a new payment for a subscription that is still waiting for one"""
        subscription = await self._get(db, subscription_id)
        if subscription.status != SubscriptionStatus.PENDING.value:
            raise ValidationError(f"Subscription is {subscription.status}, only PENDING subscriptions take new payments")
        plan = await self._get_plan(db, subscription.plan_id)
        return await self.payments.create_payment(
            db, subscription.id, plan.price, gateway or settings.DEFAULT_GATEWAY, user_email, user_phone
        )

    async def activate_subscription(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        user_email: Optional[str] = None,
        user_phone: Optional[str] = None,
    ) -> Subscription:
        """Start the paid period: ACTIVE from now for plan.duration days.

        Called once per successful verification. The notification, audit entry
        and subscription.activated webhook are best-effort; activation stands
        once the status update is committed.
        """
        subscription = await self._get(db, subscription_id)
        plan = await self._get_plan(db, subscription.plan_id)
        user_id = subscription.user_id
        plan_id, plan_name = plan.id, plan.name

        start_date = utcnow()
        end_date = start_date + timedelta(days=plan.duration)
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.start_date = start_date
        subscription.end_date = end_date
        await db.commit()
        logger.info(f"Subscription {subscription.id} active until {end_date.isoformat()}")

        outcome = await self.notifications.send_subscription_activated(
            user_email, user_phone, plan_name, end_date
        )
        self.notifications.record(db, outcome, user_id=user_id)
        await commit_side_effect(db, f"subscription {subscription_id} notification log")

        await self.audit.log(
            db,
            "SUBSCRIPTION_ACTIVATED",
            user_id=user_id,
            target_type="Subscription",
            target_id=subscription_id,
            metadata={"plan_id": str(plan_id)},
        )

        await self.webhooks.dispatch(
            db,
            user_id,
            "subscription.activated",
            {
                "id": str(subscription_id),
                "userId": str(user_id),
                "planId": str(plan_id),
                "startDate": start_date.isoformat(),
                "endDate": end_date.isoformat(),
            },
        )

        # A failed side-effect commit rolls back and expires the session
        await db.refresh(subscription)
        return subscription

    async def cancel_subscription(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        """Stop renewal; end_date is left alone so paid access runs out naturally"""
        subscription = await self._get(db, subscription_id)
        subscription.status = SubscriptionStatus.CANCELLED.value
        subscription.auto_renew = False
        await db.commit()
        logger.info(f"Subscription {subscription.id} cancelled")

        await self.audit.log(
            db,
            "SUBSCRIPTION_CANCELLED",
            user_id=subscription.user_id,
            target_type="Subscription",
            target_id=subscription_id,
        )
        await db.refresh(subscription)
        return subscription

    async def get_subscription(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        return await self._get(db, subscription_id)

    async def get_user_subscriptions(self, db: AsyncSession, user_id: UUID) -> List[Subscription]:
        result = await db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_active_subscription(self, db: AsyncSession, user_id: UUID) -> Optional[Subscription]:
        result = await db.execute(
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.end_date >= utcnow(),
            )
            .order_by(Subscription.end_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # Plans

    async def create_plan(
        self,
        db: AsyncSession,
        name: str,
        price: int,
        duration: int,
        description: Optional[str] = None,
        currency: str = "IRR",
        features: Optional[Any] = None,
        is_active: bool = True,
    ) -> Plan:
        if price < 0:
            raise ValidationError("price must not be negative")
        if duration < 1:
            raise ValidationError("duration must be at least one day")
        plan = Plan(
            name=name,
            description=description,
            price=price,
            currency=currency or "IRR",
            duration=duration,
            features=features,
            is_active=is_active,
        )
        db.add(plan)
        await db.commit()
        logger.info(f"Plan {plan.id} created: {name} ({price} {plan.currency}/{duration}d)")
        return plan

    async def set_plan_active(self, db: AsyncSession, plan_id: UUID, is_active: bool) -> Plan:
        """The only change allowed on a plan once subscriptions reference it"""
        plan = await self._get_plan(db, plan_id)
        plan.is_active = is_active
        await db.commit()
        return plan

    async def get_available_plans(self, db: AsyncSession) -> List[Plan]:
        result = await db.execute(
            select(Plan).where(Plan.is_active.is_(True)).order_by(Plan.price.asc())
        )
        return list(result.scalars().all())

    async def get_all_plans(self, db: AsyncSession) -> List[Plan]:
        result = await db.execute(select(Plan).order_by(Plan.created_at.desc()))
        return list(result.scalars().all())


# Global service instance
subscription_service = SubscriptionService()
