"""
API key authentication dependencies
"""
from fastapi import Request, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from subsapi.config import settings
from subsapi.models.api_key import ApiKey
from subsapi.services.api_key_service import api_key_service
from subsapi.utils.database import get_db
from subsapi.utils.errors import ForbiddenError, UnauthorizedError
from subsapi.utils.security import constant_time_equals

def extract_api_key(request: Request) -> Optional[str]:
    """Key from the x-api-key header, else from `Authorization: ApiKey <key>`"""
    header_key = (request.headers.get("x-api-key") or "").strip()
    if header_key:
        return header_key

    auth = (request.headers.get("authorization") or "").strip()
    if auth.startswith("ApiKey "):
        return auth[len("ApiKey "):].strip() or None

    return None

def is_master(key: Optional[str]) -> bool:
    if not key or not settings.MASTER_API_KEY:
        return False
    return constant_time_equals(key, settings.MASTER_API_KEY)

async def require_api_key(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Optional[ApiKey]:
    """Authenticate the caller; returns None for the master key"""
    key = extract_api_key(request)
    request.state.is_master = is_master(key)
    request.state.api_key = None

    if request.state.is_master:
        return None
    if not key:
        raise UnauthorizedError("Missing API key")

    api_key = await api_key_service.verify_and_touch(db, key)
    if not api_key:
        raise UnauthorizedError("Invalid API key")

    request.state.api_key = api_key
    return api_key

async def require_master(request: Request) -> None:
    """Administrative routes accept only the configured master key"""
    if not is_master(extract_api_key(request)):
        raise ForbiddenError("Master API key required")
    request.state.is_master = True

async def require_user_id(api_key: Optional[ApiKey] = Depends(require_api_key)) -> UUID:
    """Owner of a user-scoped key; service and master keys have no user"""
    if api_key is None or api_key.user_id is None:
        raise ForbiddenError("A user-scoped API key is required")
    return api_key.user_id
