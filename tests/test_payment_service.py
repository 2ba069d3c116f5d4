import asyncio
import uuid

import pytest
from sqlalchemy import select

from subsapi.models.notification import Notification
from subsapi.models.payment import Payment
from subsapi.models.subscription import Subscription
from subsapi.services.gateways import GatewayRegistry, MockGateway
from subsapi.services.notification_service import NotificationService
from subsapi.services.payment_service import PaymentService
from subsapi.utils.errors import GatewayError, NotFoundError

from tests.conftest import FakeEmail, FakeSms


class RejectingGateway(MockGateway):
    async def verify_payment(self, authority, amount=None):
        self.verify_calls += 1
        raise GatewayError("Session is not valid", code=-51)


class SlowGateway(MockGateway):
    async def verify_payment(self, authority, amount=None):
        await asyncio.sleep(0.05)
        return await super().verify_payment(authority, amount)


async def make_pending(db, user, plan, payments, gateway="mock", **contact):
    subscription = Subscription(user_id=user.id, plan_id=plan.id, status="PENDING")
    db.add(subscription)
    await db.commit()
    payment = await payments.create_payment(db, subscription.id, plan.price, gateway, **contact)
    return subscription, payment


async def test_create_payment_persists_pending_row(db, user, plan, payments, mock_gateway):
    subscription, payment = await make_pending(db, user, plan, payments)

    assert payment.status == "PENDING"
    assert payment.subscription_id == subscription.id
    assert payment.amount == 150000
    assert payment.currency == "IRR"
    assert payment.gateway == "mock"
    assert payment.authority.startswith("AUTH-")
    assert payment.payment_url.endswith(payment.authority)
    assert payment.meta["message"] == "Mock payment created"
    assert mock_gateway.create_calls == 1


async def test_create_payment_sends_link_and_logs_it(db, user, plan, payments, sms, email):
    _, payment = await make_pending(
        db, user, plan, payments, user_email="sara@example.com", user_phone="09121234567"
    )

    assert payment.notification_sent is True
    assert sms.sent[0][0] == "09121234567"
    assert payment.payment_url in sms.sent[0][1]
    assert email.sent == [("sara@example.com", "Payment for Pro Monthly")]

    logs = (await db.execute(select(Notification).order_by(Notification.kind))).scalars().all()
    assert [(n.kind, n.success, n.payment_id) for n in logs] == [
        ("email_payment_link", True, payment.id),
        ("sms_payment_link", True, payment.id),
    ]


async def test_create_payment_survives_notification_failures(db, user, plan, registry, credentials):
    payments = PaymentService(
        registry=registry,
        notifications=NotificationService(sms=FakeSms(fail=True), email=FakeEmail(fail=True)),
        credentials=credentials,
    )

    _, payment = await make_pending(
        db, user, plan, payments, user_email="sara@example.com", user_phone="09121234567"
    )

    assert payment.status == "PENDING"
    assert payment.notification_sent is False
    logs = (await db.execute(select(Notification))).scalars().all()
    assert len(logs) == 2
    assert not any(n.success for n in logs)


async def test_create_payment_for_missing_subscription(db, payments):
    with pytest.raises(NotFoundError):
        await payments.create_payment(db, uuid.uuid4(), 1000, "mock")


async def test_create_payment_uses_user_gateway_credentials(db, user, plan, payments, credentials, gateway_configs):
    await credentials.upsert(db, user.id, "mock", "user-merchant", sandbox=False)

    await make_pending(db, user, plan, payments)

    assert gateway_configs[-1].merchant_id == "user-merchant"
    assert gateway_configs[-1].sandbox is False


async def test_verify_completes_payment(db, user, plan, payments, mock_gateway):
    _, payment = await make_pending(db, user, plan, payments)

    verification = await payments.verify(db, payment.authority, "OK")

    assert verification.newly_completed is True
    completed = verification.payment
    assert completed.status == "COMPLETED"
    assert completed.gateway_tx_id.startswith("REF-")
    assert completed.paid_at is not None
    assert completed.verified_at is not None
    assert completed.meta["ref_id"] == completed.gateway_tx_id
    assert completed.meta["card_pan"] == "1234-5678-****-****"
    # Creation metadata is kept alongside verification metadata
    assert completed.meta["message"] == "Mock payment created"
    assert mock_gateway.verify_calls == 1


async def test_verify_is_idempotent(db, user, plan, payments, mock_gateway):
    _, payment = await make_pending(db, user, plan, payments)

    first = await payments.verify(db, payment.authority, "OK")
    second = await payments.verify(db, payment.authority, "OK")
    third = await payments.verify_payment(db, payment.authority)

    assert second.newly_completed is False
    assert second.payment.gateway_tx_id == first.payment.gateway_tx_id
    assert third.status == "COMPLETED"
    assert mock_gateway.verify_calls == 1


@pytest.mark.parametrize("status", ["NOK", "nok", "cancel", "Canceled", "cancelled", "failed"])
async def test_cancel_status_fails_payment_without_gateway_call(db, user, plan, payments, mock_gateway, status):
    _, payment = await make_pending(db, user, plan, payments)

    with pytest.raises(GatewayError) as exc:
        await payments.verify(db, payment.authority, status)
    assert exc.value.code == status

    stored = await payments.get_payment_by_authority(db, payment.authority)
    assert stored.status == "FAILED"
    assert mock_gateway.verify_calls == 0


async def test_failed_payment_is_terminal(db, user, plan, payments, mock_gateway):
    _, payment = await make_pending(db, user, plan, payments)
    with pytest.raises(GatewayError):
        await payments.verify(db, payment.authority, "NOK")

    with pytest.raises(GatewayError):
        await payments.verify(db, payment.authority, "OK")
    assert mock_gateway.verify_calls == 0


async def test_cancel_status_does_not_undo_completion(db, user, plan, payments):
    _, payment = await make_pending(db, user, plan, payments)
    await payments.verify(db, payment.authority, "OK")

    with pytest.raises(GatewayError):
        await payments.verify(db, payment.authority, "NOK")
    assert (await payments.get_payment_by_authority(db, payment.authority)).status == "COMPLETED"


async def test_gateway_rejection_fails_payment(db, user, plan, notifications, credentials):
    gateway = RejectingGateway()
    payments = PaymentService(
        registry=GatewayRegistry({"mock": lambda config: gateway}),
        notifications=notifications,
        credentials=credentials,
    )
    _, payment = await make_pending(db, user, plan, payments)

    with pytest.raises(GatewayError) as exc:
        await payments.verify(db, payment.authority, "OK")
    assert exc.value.code == -51

    assert (await payments.get_payment_by_authority(db, payment.authority)).status == "FAILED"
    assert gateway.verify_calls == 1


async def test_verify_unknown_authority(db, payments):
    with pytest.raises(NotFoundError):
        await payments.verify(db, "AUTH-missing", "OK")


async def test_lookups(db, user, plan, payments):
    subscription, first = await make_pending(db, user, plan, payments)
    second = await payments.create_payment(db, subscription.id, plan.price, "mock")

    assert (await payments.get_payment_by_authority(db, first.authority)).id == first.id
    assert await payments.get_payment_by_authority(db, "nope") is None

    listed = await payments.get_payments_by_subscription(db, subscription.id)
    assert [p.id for p in listed] == [second.id, first.id]
    assert await payments.get_payments_by_subscription(db, uuid.uuid4()) == []
    assert len((await db.execute(select(Payment))).scalars().all()) == 2


async def test_concurrent_verifies_call_the_gateway_once(db, session_factory, user, plan, notifications, credentials):
    gateway = SlowGateway()
    payments = PaymentService(
        registry=GatewayRegistry({"mock": lambda config: gateway}),
        notifications=notifications,
        credentials=credentials,
    )
    _, payment = await make_pending(db, user, plan, payments)

    async def verify_in_own_session():
        async with session_factory() as session:
            verification = await payments.verify(session, payment.authority, "OK")
            return verification.newly_completed, verification.payment.gateway_tx_id

    results = await asyncio.gather(*(verify_in_own_session() for _ in range(3)))

    assert gateway.verify_calls == 1
    assert [newly for newly, _ in results] == [True, False, False]
    assert len({tx_id for _, tx_id in results}) == 1
