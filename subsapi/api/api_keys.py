"""
API key management endpoints (master key only)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from subsapi.api.schemas import (
    CreateApiKeyRequest, DeactivateApiKeyRequest, ApiKeyResponse,
    IssuedApiKeyResponse, SuccessResponse,
)
from subsapi.services.api_key_service import api_key_service
from subsapi.utils.database import get_db
from subsapi.utils.errors import NotFoundError

router = APIRouter()

@router.post("", response_model=IssuedApiKeyResponse, status_code=201)
async def create_api_key(
    body: Optional[CreateApiKeyRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    """Issue a key; the plaintext is in this response only"""
    body = body or CreateApiKeyRequest()
    api_key, plaintext = await api_key_service.create(db, label=body.label, user_id=body.user_id)
    return IssuedApiKeyResponse(id=api_key.id, key=plaintext, label=api_key.label)

@router.get("", response_model=List[ApiKeyResponse])
async def list_api_keys(db: AsyncSession = Depends(get_db)):
    return await api_key_service.list(db)

@router.delete("", response_model=SuccessResponse)
async def deactivate_api_key(
    body: DeactivateApiKeyRequest,
    db: AsyncSession = Depends(get_db)
):
    """Revoke a key; the row is kept for the audit trail"""
    if not await api_key_service.deactivate(db, body.id):
        raise NotFoundError("API key", "Key not found")
    return SuccessResponse(success=True)

@router.post("/{key_id}/rotate", response_model=IssuedApiKeyResponse, status_code=201)
async def rotate_api_key(
    key_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    api_key, plaintext = await api_key_service.rotate(db, key_id)
    return IssuedApiKeyResponse(id=api_key.id, key=plaintext, label=api_key.label)
