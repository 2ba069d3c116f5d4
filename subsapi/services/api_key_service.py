"""
API Key Service
Issues, verifies, deactivates and rotates hashed bearer credentials
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.models.api_key import ApiKey
from subsapi.utils.database import utcnow
from subsapi.utils.errors import NotFoundError
from subsapi.utils.security import generate_api_key, hash_secret

logger = logging.getLogger(__name__)


class ApiKeyService:

    async def create(
        self,
        db: AsyncSession,
        label: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> Tuple[ApiKey, str]:
        """Create a key and return it with its plaintext, which is never stored"""
        plaintext = generate_api_key()
        api_key = ApiKey(hash=hash_secret(plaintext), label=label, user_id=user_id, is_active=True)
        db.add(api_key)
        await db.commit()
        logger.info(f"Issued API key {api_key.id} (label={label!r}, user={user_id})")
        return api_key, plaintext

    async def list(self, db: AsyncSession) -> List[ApiKey]:
        result = await db.execute(select(ApiKey).order_by(ApiKey.created_at.desc()))
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, key_id: UUID) -> Optional[ApiKey]:
        result = await db.execute(select(ApiKey).where(ApiKey.id == key_id))
        return result.scalar_one_or_none()

    async def deactivate(self, db: AsyncSession, key_id: UUID) -> bool:
        api_key = await self.get(db, key_id)
        if not api_key:
            return False
        api_key.is_active = False
        await db.commit()
        logger.info(f"Deactivated API key {key_id}")
        return True

    async def rotate(self, db: AsyncSession, key_id: UUID) -> Tuple[ApiKey, str]:
        """Deactivate a key and issue a replacement with the same label and owner"""
        old = await self.get(db, key_id)
        if not old:
            raise NotFoundError("API key")
        old.is_active = False
        plaintext = generate_api_key()
        new = ApiKey(hash=hash_secret(plaintext), label=old.label, user_id=old.user_id, is_active=True)
        db.add(new)
        await db.commit()
        logger.info(f"Rotated API key {old.id} -> {new.id}")
        return new, plaintext

    async def verify_and_touch(self, db: AsyncSession, key: str) -> Optional[ApiKey]:
        """Return the active key matching the plaintext and stamp last_used_at"""
        result = await db.execute(select(ApiKey).where(ApiKey.hash == hash_secret(key)))
        api_key = result.scalar_one_or_none()
        if not api_key or not api_key.is_active:
            return None
        api_key.last_used_at = utcnow()
        await db.commit()
        return api_key


# Global service instance
api_key_service = ApiKeyService()
