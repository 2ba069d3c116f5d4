"""
Webhook endpoints
Scoped to the user that owns the calling API key
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from subsapi.api.schemas import (
    CreateWebhookRequest, UpdateWebhookRequest, WebhookResponse,
    CreatedWebhookResponse, SuccessResponse,
)
from subsapi.middleware.auth import require_user_id
from subsapi.services.webhook_service import webhook_service
from subsapi.utils.database import get_db
from subsapi.utils.errors import NotFoundError

router = APIRouter()

@router.get("", response_model=List[WebhookResponse])
async def list_webhooks(
    user_id: UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db)
):
    return await webhook_service.list(db, user_id)

@router.post("", response_model=CreatedWebhookResponse, status_code=201)
async def create_webhook(
    body: CreateWebhookRequest,
    user_id: UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Register an endpoint; the response holds the signing secret"""
    return await webhook_service.create(
        db, user_id, str(body.url), event_types=body.event_types, secret=body.secret
    )

@router.patch("/{webhook_id}", response_model=WebhookResponse)
async def update_webhook(
    webhook_id: UUID,
    body: UpdateWebhookRequest,
    user_id: UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db)
):
    webhook = await webhook_service.update(
        db,
        user_id,
        webhook_id,
        url=str(body.url) if body.url is not None else None,
        event_types=body.event_types,
        is_active=body.is_active,
    )
    if not webhook:
        raise NotFoundError("Webhook")
    return webhook

@router.delete("/{webhook_id}", response_model=SuccessResponse)
async def delete_webhook(
    webhook_id: UUID,
    user_id: UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db)
):
    if not await webhook_service.remove(db, user_id, webhook_id):
        raise NotFoundError("Webhook")
    return SuccessResponse(success=True)
