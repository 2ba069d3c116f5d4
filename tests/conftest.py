import os

# Must be set before subsapi.config.settings is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["MASTER_API_KEY"] = "test-master-key"
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["API_BASE_URL"] = "http://api.test"
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["BREVO_API_KEY"] = ""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from subsapi import models  # noqa: F401
from subsapi.models.plan import Plan
from subsapi.models.user import User
from subsapi.services.audit_service import AuditService
from subsapi.services.gateway_credential_service import GatewayCredentialService
from subsapi.services.gateways import GatewayRegistry, MockGateway, ZarinpalGateway, ZibalGateway
from subsapi.services.notification_service import NotificationService
from subsapi.services.payment_service import PaymentService
from subsapi.services.subscription_service import SubscriptionService
from subsapi.services.twilio_service import SmsDeliveryError
from subsapi.services.webhook_service import WebhookService
from subsapi.utils.database import Base
from subsapi.utils.email_brevo import EmailDeliveryError


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands timestamps back without tzinfo; they are stored as UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class FakeSms:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, str]] = []
        self.otp_codes: List[str] = []

    async def _send(self, phone: str, text: str) -> str:
        if self.fail:
            raise SmsDeliveryError("sms provider down")
        self.sent.append((phone, text))
        return f"SM{len(self.sent)}"

    async def send_payment_link(self, phone, payment_url, plan_name, amount):
        return await self._send(phone, f"{plan_name} {amount} {payment_url}")

    async def send_subscription_activated(self, phone, plan_name, end_date):
        return await self._send(phone, f"{plan_name} active until {end_date:%Y-%m-%d}")

    async def send_otp(self, phone, code, minutes):
        self.otp_codes.append(code)
        return await self._send(phone, f"code {code}")


class FakeEmail:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, str]] = []

    async def _send(self, to_email: str, subject: str) -> str:
        if self.fail:
            raise EmailDeliveryError("brevo returned 500")
        self.sent.append((to_email, subject))
        return f"<msg-{len(self.sent)}@brevo>"

    async def send_payment_link(self, to_email, payment_url, plan_name, amount):
        return await self._send(to_email, f"Payment for {plan_name}")

    async def send_subscription_activated(self, to_email, plan_name, end_date):
        return await self._send(to_email, f"Subscription Activated - {plan_name}")


class WebhookReceiver:
    """httpx handler that answers with queued status codes and keeps every request"""

    def __init__(self, statuses: Optional[List[int]] = None):
        self.statuses = list(statuses or [])
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.pop(0) if self.statuses else 200
        return httpx.Response(status, json={"ok": status < 400})


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def sms():
    return FakeSms()


@pytest.fixture
def email():
    return FakeEmail()


@pytest.fixture
def notifications(sms, email):
    return NotificationService(sms=sms, email=email)


@pytest.fixture
def mock_gateway():
    return MockGateway()


@pytest.fixture
def gateway_configs():
    """Configs the registry handed to the mock gateway, in call order"""
    return []


@pytest.fixture
def registry(mock_gateway, gateway_configs):
    def mock_factory(config):
        gateway_configs.append(config)
        return mock_gateway

    return GatewayRegistry({
        "zarinpal": ZarinpalGateway,
        "zibal": ZibalGateway,
        "mock": mock_factory,
    })


@pytest.fixture
def credentials(registry):
    return GatewayCredentialService(registry)


@pytest.fixture
def payments(registry, notifications, credentials):
    return PaymentService(registry=registry, notifications=notifications, credentials=credentials)


@pytest.fixture
def receiver():
    return WebhookReceiver()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def webhooks(receiver, sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return WebhookService(transport=httpx.MockTransport(receiver), sleep=fake_sleep)


@pytest.fixture
def subscriptions(payments, notifications, webhooks):
    return SubscriptionService(
        payments=payments,
        notifications=notifications,
        webhooks=webhooks,
        audit=AuditService(),
    )


@pytest_asyncio.fixture
async def user(db):
    user = User(phone="09121234567", email="sara@example.com", name="Sara")
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def plan(db):
    plan = Plan(name="Pro Monthly", price=150000, currency="IRR", duration=30, is_active=True)
    db.add(plan)
    await db.commit()
    return plan
