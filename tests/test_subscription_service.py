import json
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from subsapi.models.audit_log import AuditLog
from subsapi.models.plan import Plan
from subsapi.models.subscription import Subscription
from subsapi.services.gateways import GatewayRegistry, MockGateway
from subsapi.services.payment_service import PaymentService
from subsapi.services.subscription_service import SubscriptionService
from subsapi.utils.database import utcnow
from subsapi.utils.errors import GatewayError, NotFoundError, ValidationError
from subsapi.utils.security import sign_payload

from tests.conftest import as_utc


class DownGateway(MockGateway):
    async def create_payment(self, *args, **kwargs):
        raise GatewayError("zarinpal is unreachable", status_code=502)


async def test_create_subscription_opens_pending_payment(db, user, plan, subscriptions):
    result = await subscriptions.create_subscription(
        db, user.id, plan.id, gateway="mock", auto_renew=True, user_phone="09121234567"
    )

    subscription, payment = result["subscription"], result["payment"]
    assert subscription.status == "PENDING"
    assert subscription.auto_renew is True
    assert subscription.start_date is None
    assert subscription.end_date is None
    assert payment.subscription_id == subscription.id
    assert payment.amount == plan.price
    assert payment.status == "PENDING"
    assert result["plan"].id == plan.id


async def test_create_subscription_validates_plan_and_user(db, user, plan, subscriptions):
    with pytest.raises(NotFoundError) as exc:
        await subscriptions.create_subscription(db, user.id, uuid.uuid4(), gateway="mock")
    assert exc.value.message == "Plan not found"

    with pytest.raises(NotFoundError) as exc:
        await subscriptions.create_subscription(db, uuid.uuid4(), plan.id, gateway="mock")
    assert exc.value.message == "User not found"

    await subscriptions.set_plan_active(db, plan.id, False)
    with pytest.raises(ValidationError):
        await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock")

    assert (await db.execute(select(Subscription))).scalars().all() == []


async def test_unknown_gateway_creates_nothing(db, user, plan, subscriptions):
    with pytest.raises(ValidationError) as exc:
        await subscriptions.create_subscription(db, user.id, plan.id, gateway="paypal")
    assert "not supported" in exc.value.message
    assert (await db.execute(select(Subscription))).scalars().all() == []


async def test_gateway_failure_leaves_subscription_pending(db, user, plan, notifications, credentials, webhooks):
    payments = PaymentService(
        registry=GatewayRegistry({"mock": lambda config: DownGateway()}),
        notifications=notifications,
        credentials=credentials,
    )
    service = SubscriptionService(payments=payments, notifications=notifications, webhooks=webhooks)

    with pytest.raises(GatewayError):
        await service.create_subscription(db, user.id, plan.id, gateway="mock")

    subscription = (await db.execute(select(Subscription))).scalar_one()
    assert subscription.status == "PENDING"
    assert await payments.get_payments_by_subscription(db, subscription.id) == []


async def test_retry_payment_for_pending_subscription(db, user, plan, subscriptions, payments):
    result = await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock")
    subscription = result["subscription"]

    retry = await subscriptions.retry_payment(db, subscription.id, gateway="mock")

    assert retry.authority != result["payment"].authority
    assert len(await payments.get_payments_by_subscription(db, subscription.id)) == 2


async def test_retry_payment_rejected_once_active(db, user, plan, subscriptions):
    result = await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock")
    await subscriptions.activate_subscription(db, result["subscription"].id)

    with pytest.raises(ValidationError):
        await subscriptions.retry_payment(db, result["subscription"].id, gateway="mock")


async def test_activation_sets_period_from_plan_duration(db, user, plan, subscriptions, sms):
    result = await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock")
    before = utcnow()

    subscription = await subscriptions.activate_subscription(
        db, result["subscription"].id, user_phone="09121234567"
    )

    assert subscription.status == "ACTIVE"
    start, end = as_utc(subscription.start_date), as_utc(subscription.end_date)
    assert before <= start <= utcnow()
    assert end - start == timedelta(days=30)
    assert sms.sent[-1] == ("09121234567", f"Pro Monthly active until {end:%Y-%m-%d}")

    active = await subscriptions.get_active_subscription(db, user.id)
    assert active.id == subscription.id


async def test_activation_writes_audit_entry(db, user, plan, subscriptions):
    result = await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock")
    await subscriptions.activate_subscription(db, result["subscription"].id)

    entry = (await db.execute(select(AuditLog))).scalar_one()
    assert entry.action == "SUBSCRIPTION_ACTIVATED"
    assert entry.user_id == user.id
    assert entry.target_id == str(result["subscription"].id)
    assert entry.meta == {"plan_id": str(plan.id)}


async def test_activation_fires_signed_webhook(db, user, plan, subscriptions, webhooks, receiver):
    hook = await webhooks.create(db, user.id, "https://hooks.example.com/subs", ["subscription.activated"])
    result = await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock")

    await subscriptions.activate_subscription(db, result["subscription"].id)

    assert len(receiver.requests) == 1
    request = receiver.requests[0]
    payload = json.loads(request.content)
    assert request.headers["X-Webhook-Event"] == "subscription.activated"
    assert request.headers["X-Webhook-Signature"] == sign_payload(hook.secret, payload)
    assert payload["id"] == str(result["subscription"].id)
    assert payload["userId"] == str(user.id)
    assert payload["planId"] == str(plan.id)


async def test_webhook_failure_does_not_undo_activation(db, user, plan, subscriptions, webhooks, receiver):
    receiver.statuses = [500, 500, 500]
    await webhooks.create(db, user.id, "https://hooks.example.com/subs", ["subscription.activated"])
    result = await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock")

    subscription = await subscriptions.activate_subscription(db, result["subscription"].id)

    assert subscription.status == "ACTIVE"
    assert len(receiver.requests) == 3


async def test_cancel_keeps_end_date(db, user, plan, subscriptions):
    result = await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock", auto_renew=True)
    active = await subscriptions.activate_subscription(db, result["subscription"].id)
    end_date = active.end_date

    cancelled = await subscriptions.cancel_subscription(db, active.id)

    assert cancelled.status == "CANCELLED"
    assert cancelled.auto_renew is False
    assert cancelled.end_date == end_date
    assert await subscriptions.get_active_subscription(db, user.id) is None

    actions = (await db.execute(select(AuditLog.action).order_by(AuditLog.created_at))).scalars().all()
    assert actions == ["SUBSCRIPTION_ACTIVATED", "SUBSCRIPTION_CANCELLED"]


async def test_cancel_missing_subscription(db, subscriptions):
    with pytest.raises(NotFoundError):
        await subscriptions.cancel_subscription(db, uuid.uuid4())


async def test_active_subscription_ignores_lapsed_periods(db, user, plan, subscriptions):
    lapsed = Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status="ACTIVE",
        start_date=utcnow() - timedelta(days=40),
        end_date=utcnow() - timedelta(days=10),
    )
    db.add(lapsed)
    await db.commit()

    assert await subscriptions.get_active_subscription(db, user.id) is None


async def test_user_subscriptions_newest_first(db, user, plan, subscriptions):
    first = (await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock"))["subscription"]
    second = (await subscriptions.create_subscription(db, user.id, plan.id, gateway="mock"))["subscription"]

    listed = await subscriptions.get_user_subscriptions(db, user.id)
    assert [s.id for s in listed] == [second.id, first.id]
    assert (await subscriptions.get_subscription(db, first.id)).id == first.id


async def test_plan_catalog(db, subscriptions):
    basic = await subscriptions.create_plan(db, name="Basic", price=50000, duration=30)
    pro = await subscriptions.create_plan(db, name="Pro", price=150000, duration=30, features=["priority"])
    await subscriptions.create_plan(db, name="Legacy", price=10000, duration=30, is_active=False)

    assert basic.currency == "IRR"
    assert pro.features == ["priority"]
    assert [p.name for p in await subscriptions.get_available_plans(db)] == ["Basic", "Pro"]
    assert len(await subscriptions.get_all_plans(db)) == 3

    await subscriptions.set_plan_active(db, basic.id, False)
    assert [p.name for p in await subscriptions.get_available_plans(db)] == ["Pro"]


async def test_create_plan_validates_numbers(db, subscriptions):
    with pytest.raises(ValidationError):
        await subscriptions.create_plan(db, name="Free", price=-1, duration=30)
    with pytest.raises(ValidationError):
        await subscriptions.create_plan(db, name="Zero", price=100, duration=0)
    assert (await db.execute(select(Plan))).scalars().all() == []
