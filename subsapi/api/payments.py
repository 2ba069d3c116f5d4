"""
Payments API endpoints
Verification, lookups and the gateway return URL
"""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from subsapi.api.schemas import (
    VerifyPaymentRequest, VerifyPaymentResponse, PaymentSummary, PaymentResponse,
)
from subsapi.config import settings
from subsapi.middleware.auth import require_api_key
from subsapi.models.payment import PaymentStatus
from subsapi.services.gateways import supported_gateways
from subsapi.services.payment_service import payment_service
from subsapi.services.subscription_service import subscription_service
from subsapi.utils.database import get_db
from subsapi.utils.errors import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()

# Gateways send the user's browser here, so this route takes no API key
@router.get("/callback")
async def payment_callback(
    Authority: Optional[str] = None,
    Status: Optional[str] = None,
    trackId: Optional[str] = None,
    success: Optional[str] = None,
):
    """Forward the gateway's return parameters to the frontend verify page.

    Nothing here is trusted; the frontend calls POST /api/payment/verify,
    which asks the gateway itself. Zarinpal sends Authority/Status, Zibal
    sends trackId/success.
    """
    authority = Authority or trackId or ""
    status = Status
    if status is None and success is not None:
        status = "OK" if success == "1" else "NOK"

    query = urlencode({"authority": authority, "status": status or ""})
    return RedirectResponse(url=f"{settings.FRONTEND_URL}/payment/verify?{query}", status_code=302)

@router.post("/verify", response_model=VerifyPaymentResponse, dependencies=[Depends(require_api_key)])
async def verify_payment(
    body: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db)
):
    """Confirm a payment with its gateway and activate the subscription.

    Safe to call repeatedly: a completed payment is reported again without
    another gateway call, and activation happens only on the call that
    completed it.
    """
    verification = await payment_service.verify(db, body.authority, body.status)
    payment = verification.payment

    response = VerifyPaymentResponse(
        success=payment.status == PaymentStatus.COMPLETED.value,
        payment=PaymentSummary.model_validate(payment),
        subscription_id=payment.subscription_id,
    )

    if verification.newly_completed:
        await subscription_service.activate_subscription(
            db,
            response.subscription_id,
            user_email=payment.user_email,
            user_phone=payment.user_phone,
        )

    return response

@router.get("/by-authority", response_model=PaymentResponse, dependencies=[Depends(require_api_key)])
async def get_payment_by_authority(
    authority: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db)
):
    payment = await payment_service.get_payment_by_authority(db, authority)
    if not payment:
        raise NotFoundError("Payment")
    return payment

@router.get("/by-subscription", response_model=List[PaymentResponse], dependencies=[Depends(require_api_key)])
async def get_payments_by_subscription(
    subscription_id: UUID = Query(alias="subscriptionId"),
    db: AsyncSession = Depends(get_db)
):
    """Every payment of a subscription, newest first"""
    return await payment_service.get_payments_by_subscription(db, subscription_id)

@router.get("/gateways", response_model=List[str], dependencies=[Depends(require_api_key)])
async def list_gateways():
    return supported_gateways()
