import hashlib
import hmac
import uuid

import httpx
from sqlalchemy import select

from subsapi.models.webhook import WebhookDelivery
from subsapi.services.webhook_service import WebhookService

EVENT = "subscription.activated"
PAYLOAD = {"id": "sub-1", "endDate": "2026-11-16T09:00:00+00:00"}


async def test_create_generates_secret(db, user, webhooks):
    hook = await webhooks.create(db, user.id, "https://hooks.example.com/a", [EVENT])

    assert len(hook.secret) == 64
    assert hook.event_types == [EVENT]
    assert hook.is_active is True

    custom = await webhooks.create(db, user.id, "https://hooks.example.com/b", [EVENT], secret="s3cret")
    assert custom.secret == "s3cret"


async def test_delivery_is_signed(db, user, webhooks, receiver):
    hook = await webhooks.create(db, user.id, "https://hooks.example.com/a", [EVENT], secret="s3cret")

    outcomes = await webhooks.dispatch(db, user.id, EVENT, PAYLOAD)

    assert len(outcomes) == 1
    assert outcomes[0].success is True
    assert outcomes[0].attempts == 1
    assert outcomes[0].webhook_id == hook.id

    request = receiver.requests[0]
    assert str(request.url) == "https://hooks.example.com/a"
    assert request.headers["X-Webhook-Event"] == EVENT
    expected = hmac.new(b"s3cret", request.content, hashlib.sha256).hexdigest()
    assert request.headers["X-Webhook-Signature"] == expected

    delivery = (await db.execute(select(WebhookDelivery))).scalar_one()
    assert delivery.id == outcomes[0].delivery_id
    assert delivery.status == "SUCCESS"
    assert delivery.attempt_count == 1
    assert delivery.response_status == 200
    assert delivery.signature == expected
    assert delivery.payload == PAYLOAD


async def test_retries_with_backoff_until_success(db, user, webhooks, receiver, sleeps):
    receiver.statuses = [500, 502, 200]
    await webhooks.create(db, user.id, "https://hooks.example.com/a", [EVENT])

    outcome = (await webhooks.dispatch(db, user.id, EVENT, PAYLOAD))[0]

    assert outcome.success is True
    assert outcome.attempts == 3
    assert sleeps == [1, 3]
    delivery = (await db.execute(select(WebhookDelivery))).scalar_one()
    assert delivery.status == "SUCCESS"
    assert delivery.attempt_count == 3
    assert delivery.last_error is None


async def test_gives_up_after_three_attempts(db, user, webhooks, receiver, sleeps):
    receiver.statuses = [500, 500, 500, 200]
    await webhooks.create(db, user.id, "https://hooks.example.com/a", [EVENT])

    outcome = (await webhooks.dispatch(db, user.id, EVENT, PAYLOAD))[0]

    assert outcome.success is False
    assert outcome.attempts == 3
    assert outcome.response_status == 500
    assert len(receiver.requests) == 3
    delivery = (await db.execute(select(WebhookDelivery))).scalar_one()
    assert delivery.status == "FAILED"
    assert delivery.attempt_count == 3
    assert delivery.last_error == "HTTP 500"
    assert delivery.last_attempt_at is not None


async def test_transport_errors_are_captured(db, user, sleeps):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def no_sleep(seconds):
        sleeps.append(seconds)

    service = WebhookService(transport=httpx.MockTransport(handler), sleep=no_sleep)
    await service.create(db, user.id, "https://down.example.com", [EVENT])

    outcome = (await service.dispatch(db, user.id, EVENT, PAYLOAD))[0]

    assert outcome.success is False
    assert outcome.attempts == 3
    assert outcome.response_status is None
    assert "connection refused" in outcome.error


async def test_only_matching_active_hooks_receive_events(db, user, webhooks, receiver):
    await webhooks.create(db, user.id, "https://hooks.example.com/wanted", [EVENT])
    await webhooks.create(db, user.id, "https://hooks.example.com/other", ["payment.failed"])
    everything = await webhooks.create(db, user.id, "https://hooks.example.com/all", [EVENT])
    everything.event_types = []
    await db.commit()
    paused = await webhooks.create(db, user.id, "https://hooks.example.com/paused", [EVENT])
    await webhooks.update(db, user.id, paused.id, is_active=False)

    outcomes = await webhooks.dispatch(db, user.id, EVENT, PAYLOAD)

    assert len(outcomes) == 2
    assert sorted(str(r.url) for r in receiver.requests) == [
        "https://hooks.example.com/all",
        "https://hooks.example.com/wanted",
    ]


async def test_no_hooks_means_no_deliveries(db, user, webhooks, receiver):
    assert await webhooks.dispatch(db, user.id, EVENT, PAYLOAD) == []
    assert receiver.requests == []


async def test_hooks_are_scoped_to_their_owner(db, user, webhooks):
    hook = await webhooks.create(db, user.id, "https://hooks.example.com/a", [EVENT])
    stranger = uuid.uuid4()

    assert await webhooks.list(db, stranger) == []
    assert await webhooks.update(db, stranger, hook.id, url="https://evil.example.com") is None
    assert await webhooks.remove(db, stranger, hook.id) is False

    updated = await webhooks.update(db, user.id, hook.id, url="https://hooks.example.com/b", event_types=["x"])
    assert updated.url == "https://hooks.example.com/b"
    assert updated.event_types == ["x"]

    assert await webhooks.remove(db, user.id, hook.id) is True
    assert await webhooks.list(db, user.id) == []
