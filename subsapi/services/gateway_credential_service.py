"""
Gateway Credential Service
Per-user merchant configuration for payment gateways
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.models.gateway_credential import GatewayCredential
from subsapi.services.gateways import GatewayConfig, GatewayRegistry, gateway_registry
from subsapi.utils.errors import ValidationError

logger = logging.getLogger(__name__)


class GatewayCredentialService:
    def __init__(self, registry: Optional[GatewayRegistry] = None):
        self.registry = registry or gateway_registry

    async def upsert(
        self,
        db: AsyncSession,
        user_id: UUID,
        gateway: str,
        merchant_id: str,
        sandbox: bool = True,
        config: Optional[Dict[str, Any]] = None,
    ) -> GatewayCredential:
        if not merchant_id or not merchant_id.strip():
            raise ValidationError("merchantId is required")
        gateway = self.registry.validate(gateway)

        credential = await self.get(db, user_id, gateway)
        if credential:
            credential.merchant_id = merchant_id.strip()
            credential.sandbox = sandbox
            credential.config = config
        else:
            credential = GatewayCredential(
                user_id=user_id,
                gateway=gateway,
                merchant_id=merchant_id.strip(),
                sandbox=sandbox,
                config=config,
            )
            db.add(credential)
        await db.commit()
        logger.info(f"Stored {gateway} credentials for user {user_id}")
        return credential

    async def get(self, db: AsyncSession, user_id: UUID, gateway: str) -> Optional[GatewayCredential]:
        result = await db.execute(
            select(GatewayCredential).where(
                GatewayCredential.user_id == user_id,
                GatewayCredential.gateway == gateway.strip().lower(),
            )
        )
        return result.scalar_one_or_none()

    async def list(self, db: AsyncSession, user_id: UUID) -> List[GatewayCredential]:
        result = await db.execute(
            select(GatewayCredential)
            .where(GatewayCredential.user_id == user_id)
            .order_by(GatewayCredential.updated_at.desc())
        )
        return list(result.scalars().all())

    async def config_for(self, db: AsyncSession, user_id: UUID, gateway: str) -> Optional[GatewayConfig]:
        """The user's stored merchant config, or None to use the gateway defaults"""
        credential = await self.get(db, user_id, gateway)
        if not credential:
            return None
        return GatewayConfig(merchant_id=credential.merchant_id, sandbox=credential.sandbox)


gateway_credential_service = GatewayCredentialService()
