"""
Auth Service
Phone OTP login: rate-limited code issue, single-use verification, API key minting
"""

import logging
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.config import settings
from subsapi.models.otp_code import OtpCode
from subsapi.models.user import User, UserRole
from subsapi.services.api_key_service import ApiKeyService, api_key_service
from subsapi.services.notification_service import (
    NotificationOutcome, NotificationService, notification_service,
)
from subsapi.services.rate_limiter import FixedWindowRateLimiter
from subsapi.utils.database import utcnow, commit_side_effect
from subsapi.utils.errors import OtpError
from subsapi.utils.phone import normalize_phone
from subsapi.utils.security import constant_time_equals, generate_numeric_code, hash_secret

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        notifications: Optional[NotificationService] = None,
        api_keys: Optional[ApiKeyService] = None,
        otp_length: int = settings.OTP_LENGTH,
        otp_exp_min: int = settings.OTP_EXP_MIN,
        max_attempts: int = settings.OTP_MAX_ATTEMPTS,
    ):
        self.rate_limiter = rate_limiter or FixedWindowRateLimiter(
            max_requests=settings.OTP_RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.OTP_RATE_LIMIT_WINDOW_SEC,
        )
        self.notifications = notifications or notification_service
        self.api_keys = api_keys or api_key_service
        self.otp_length = otp_length
        self.otp_exp_min = otp_exp_min
        self.max_attempts = max_attempts

    async def request_otp(self, db: AsyncSession, raw_phone: str) -> NotificationOutcome:
        """Issue a login code for the phone and send it by SMS.

        Raises RateLimitError when the phone has used up its requests for the
        current window. A failed SMS send is logged and recorded but not raised.
        """
        phone = normalize_phone(raw_phone)
        self.rate_limiter.hit(f"otp:{phone}", "Too many OTP requests. Please wait and try again.")

        code = generate_numeric_code(self.otp_length)
        now = utcnow()
        db.add(OtpCode(
            phone=phone,
            code_hash=hash_secret(code),
            expires_at=now + timedelta(minutes=self.otp_exp_min),
            attempts=0,
            created_at=now,
        ))
        await db.commit()
        logger.info(f"OTP issued for {phone}")

        outcome = await self.notifications.send_otp(phone, code, self.otp_exp_min)
        if not outcome.any_succeeded:
            logger.warning(f"OTP for {phone} could not be delivered")
        self.notifications.record(db, outcome)
        await commit_side_effect(db, "OTP notification log")
        return outcome

    async def _latest_usable_code(self, db: AsyncSession, phone: str) -> Optional[OtpCode]:
        result = await db.execute(
            select(OtpCode)
            .where(
                OtpCode.phone == phone,
                OtpCode.used_at.is_(None),
                OtpCode.expires_at > utcnow(),
            )
            .order_by(OtpCode.created_at.desc())
            .limit(1)
        )
        record = result.scalar_one_or_none()
        if record and record.attempts >= self.max_attempts:
            logger.warning(f"OTP for {phone} locked after {record.attempts} attempts")
            return None
        return record

    async def _check_code(self, db: AsyncSession, phone: str, code: str) -> bool:
        record = await self._latest_usable_code(db, phone)
        if not record:
            raise OtpError("OTP not found or expired")

        ok = constant_time_equals(record.code_hash, hash_secret(code))
        record.attempts += 1
        if ok:
            record.used_at = utcnow()
        await db.commit()
        return ok

    async def verify_otp(self, db: AsyncSession, raw_phone: str, code: str) -> Tuple[User, str]:
        """Consume the code and log the user in.

        Returns the user (created on first login) and a fresh API key in
        plaintext; the plaintext is never retrievable again.
        """
        phone = normalize_phone(raw_phone)
        if not await self._check_code(db, phone, code):
            raise OtpError("Invalid OTP code")

        result = await db.execute(select(User).where(User.phone == phone))
        user = result.scalar_one_or_none()
        if not user:
            user = User(phone=phone, role=UserRole.USER.value)
            db.add(user)
            await db.commit()
            logger.info(f"Created user {user.id} for {phone}")

        _, plaintext = await self.api_keys.create(db, label="login", user_id=user.id)
        return user, plaintext

    async def validate_otp(self, db: AsyncSession, raw_phone: str, code: str) -> bool:
        """Consume the code without logging in; False when missing, expired or wrong"""
        try:
            return await self._check_code(db, normalize_phone(raw_phone), code)
        except OtpError:
            return False


# Global service instance
auth_service = AuthService()
