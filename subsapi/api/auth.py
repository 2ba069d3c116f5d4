"""
Authentication API endpoints
Phone OTP login; both routes are open
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.api.schemas import (
    RequestOtpRequest, VerifyOtpRequest, LoginResponse, UserResponse, SuccessResponse,
)
from subsapi.services.auth_service import auth_service
from subsapi.utils.database import get_db

router = APIRouter()

@router.post("/request-otp", response_model=SuccessResponse)
async def request_otp(
    body: RequestOtpRequest,
    db: AsyncSession = Depends(get_db)
):
    """Send a login code by SMS; 429 when the phone asks too often"""
    # Delivery problems are recorded server-side and not reported to the caller
    await auth_service.request_otp(db, body.phone)
    return SuccessResponse(success=True)

@router.post("/verify-otp", response_model=LoginResponse)
async def verify_otp(
    body: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a valid code for the user and a new API key"""
    user, api_key = await auth_service.verify_otp(db, body.phone, body.code)
    return LoginResponse(user=UserResponse.model_validate(user), api_key=api_key)
