"""
Plans API endpoints
Anyone with a key can browse; changing the catalog needs the master key
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from subsapi.api.schemas import CreatePlanRequest, UpdatePlanRequest, PlanResponse
from subsapi.middleware.auth import require_master
from subsapi.services.subscription_service import subscription_service
from subsapi.utils.database import get_db

router = APIRouter()

@router.get("", response_model=List[PlanResponse])
async def list_plans(
    request: Request,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db)
):
    """Active plans, cheapest first; the master key may ask for every plan"""
    if include_inactive and getattr(request.state, "is_master", False):
        return await subscription_service.get_all_plans(db)
    return await subscription_service.get_available_plans(db)

@router.post("", response_model=PlanResponse, status_code=201, dependencies=[Depends(require_master)])
async def create_plan(
    body: CreatePlanRequest,
    db: AsyncSession = Depends(get_db)
):
    return await subscription_service.create_plan(
        db,
        name=body.name,
        description=body.description,
        price=body.price,
        currency=body.currency or "IRR",
        duration=body.duration,
        features=body.features,
        is_active=body.is_active,
    )

@router.patch("/{plan_id}", response_model=PlanResponse, dependencies=[Depends(require_master)])
async def update_plan(
    plan_id: UUID,
    body: UpdatePlanRequest,
    db: AsyncSession = Depends(get_db)
):
    """Only availability can change; price and duration are fixed once sold"""
    return await subscription_service.set_plan_active(db, plan_id, body.is_active)
