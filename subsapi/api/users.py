"""
Users API endpoints
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.api.schemas import CreateUserRequest, UserResponse
from subsapi.models.user import User, UserRole
from subsapi.utils.database import get_db
from subsapi.utils.errors import ValidationError
from subsapi.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=UserResponse)
async def create_user(
    body: CreateUserRequest,
    db: AsyncSession = Depends(get_db)
):
    """Create a user ahead of OTP login, e.g. for back-office enrolment"""
    phone = normalize_phone(body.phone) if body.phone else None

    if phone:
        result = await db.execute(select(User.id).where(User.phone == phone))
        if result.scalar_one_or_none() is not None:
            raise ValidationError(f"A user with phone {phone} already exists")

    user = User(
        phone=phone,
        email=body.email,
        name=body.name,
        role=UserRole.USER.value,
    )
    db.add(user)
    await db.commit()
    logger.info(f"Created user {user.id}")
    return user
