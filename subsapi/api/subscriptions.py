"""
Subscriptions API endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from subsapi.api.schemas import (
    CreateSubscriptionRequest, RetryPaymentRequest,
    CreateSubscriptionResponse, SubscriptionResponse, PaymentResponse,
)
from subsapi.services.subscription_service import subscription_service
from subsapi.utils.database import get_db
from subsapi.utils.phone import normalize_phone

router = APIRouter()

@router.post("", response_model=CreateSubscriptionResponse)
async def create_subscription(
    body: CreateSubscriptionRequest,
    db: AsyncSession = Depends(get_db)
):
    """Create a PENDING subscription and open its first payment.

    The response carries the payment URL the user must visit. If the gateway
    rejects the payment the error is returned and the subscription stays
    PENDING; POST /{id}/payment opens a new payment for it.
    """
    result = await subscription_service.create_subscription(
        db,
        user_id=body.user_id,
        plan_id=body.plan_id,
        gateway=body.gateway,
        auto_renew=body.auto_renew,
        user_email=body.user_email,
        user_phone=normalize_phone(body.user_phone) if body.user_phone else None,
    )
    return CreateSubscriptionResponse(
        subscription=SubscriptionResponse.model_validate(result["subscription"]),
        payment=PaymentResponse.model_validate(result["payment"]),
    )

@router.get("/user/{user_id}", response_model=List[SubscriptionResponse])
async def list_user_subscriptions(
    user_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    return await subscription_service.get_user_subscriptions(db, user_id)

@router.get("/user/{user_id}/active", response_model=Optional[SubscriptionResponse])
async def get_active_subscription(
    user_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """The running subscription, or null when the user has none"""
    return await subscription_service.get_active_subscription(db, user_id)

@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    return await subscription_service.get_subscription(db, subscription_id)

@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Turn off renewal; access continues until endDate"""
    return await subscription_service.cancel_subscription(db, subscription_id)

@router.post("/{subscription_id}/payment", response_model=PaymentResponse)
async def retry_payment(
    subscription_id: UUID,
    body: Optional[RetryPaymentRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    """Open a new payment for a subscription still waiting to be paid"""
    body = body or RetryPaymentRequest()
    return await subscription_service.retry_payment(
        db,
        subscription_id,
        gateway=body.gateway,
        user_email=body.user_email,
        user_phone=normalize_phone(body.user_phone) if body.user_phone else None,
    )
