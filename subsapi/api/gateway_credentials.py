"""
Gateway credential endpoints
Lets a user collect payments with their own merchant account
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from subsapi.api.schemas import GatewayCredentialRequest, GatewayCredentialResponse
from subsapi.middleware.auth import require_user_id
from subsapi.services.gateway_credential_service import gateway_credential_service
from subsapi.utils.database import get_db

router = APIRouter()

@router.get("", response_model=List[GatewayCredentialResponse])
async def list_gateway_credentials(
    user_id: UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db)
):
    return await gateway_credential_service.list(db, user_id)

@router.put("", response_model=GatewayCredentialResponse)
async def put_gateway_credential(
    body: GatewayCredentialRequest,
    user_id: UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Create or replace the caller's credentials for one gateway"""
    return await gateway_credential_service.upsert(
        db,
        user_id,
        body.gateway,
        body.merchant_id,
        sandbox=body.sandbox,
        config=body.config,
    )
