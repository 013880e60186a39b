"""
User endpoints - accounts, credit balance and per-citizen views.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Query, status

from app.core.settings import settings
from app.models.complaint import ComplaintStats, NearbyComplaint
from app.models.user import CreditSummary, LocationUpdate, UserAccount, UserCreate
from app.services.complaint_service import get_complaint_service
from app.services.user_service import get_user_service
from app.utils.concurrency import run_blocking

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserAccount)
async def create_user(user: UserCreate):
    """Create a citizen or admin account. Citizens receive the starting credit stipend."""
    account = await run_blocking(get_user_service().create_account, user)
    logger.info(f"Account {account.id} created with role {account.role.value}")
    return account


@router.get("/{user_id}", response_model=UserAccount)
async def get_user(user_id: str):
    return await run_blocking(get_user_service().get_account, user_id)


@router.patch("/{user_id}/location", response_model=UserAccount)
async def update_location(user_id: str, update: LocationUpdate):
    return await run_blocking(get_user_service().update_location, user_id, update)


@router.get("/{user_id}/credits", response_model=CreditSummary)
async def get_credits(user_id: str):
    """Credit balance, citizen level and the complaints that earned (or cost) credits."""
    return await run_blocking(get_user_service().get_credit_summary, user_id)


@router.get("/{user_id}/stats", response_model=ComplaintStats)
async def get_user_stats(user_id: str):
    await run_blocking(get_user_service().get_account, user_id)
    return await run_blocking(get_complaint_service().get_stats, citizen_id=user_id)


@router.get("/{user_id}/nearby", response_model=List[NearbyComplaint])
async def nearby_for_user(
    user_id: str,
    radius_km: Optional[float] = Query(None, gt=0, description="Search radius in km (default 5)"),
):
    """What's happening near the user's saved location."""
    if radius_km is not None and radius_km > settings.MAX_NEARBY_RADIUS_KM:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"radius_km must be <= {settings.MAX_NEARBY_RADIUS_KM}",
        )
    account = await run_blocking(get_user_service().get_account, user_id)
    if account.location is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Location access required: this account has no saved location",
        )
    return await run_blocking(get_complaint_service().find_nearby, account.location, radius_km)
