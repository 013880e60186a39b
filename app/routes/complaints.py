"""
Complaint endpoints - citizen complaint filing and retrieval.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Query, status

from app.core.exceptions import CivicDeskError
from app.core.settings import settings
from app.models.complaint import (
    ComplaintCreate,
    ComplaintRecord,
    ComplaintStatus,
    LocatedPoint,
    NearbyComplaint,
)
from app.services.complaint_service import get_complaint_service
from app.utils.concurrency import run_blocking

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/complaints", tags=["Complaints"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ComplaintRecord)
async def file_complaint(complaint: ComplaintCreate):
    """
    File a new complaint.

    This endpoint:
    1. Validates the citizen, department and category
    2. Stores the complaint with status "submitted"

    Returns the created complaint with generated ID.
    """
    try:
        logger.info(f"POST /complaints - department={complaint.department_id}, category={complaint.category}")
        result = await run_blocking(get_complaint_service().file_complaint, complaint)
        logger.info(f"Complaint created: {result.id}")
        return result
    except (HTTPException, CivicDeskError):
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"POST /complaints - complaint creation failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Complaint creation failed: {str(e)}"
        )


@router.get("", response_model=List[ComplaintRecord])
async def list_complaints(
    department: Optional[str] = Query(None, description="Department id or name"),
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status", description="Filter by status"),
    citizen_id: Optional[str] = Query(None, description="Only complaints filed by this citizen"),
    q: Optional[str] = Query(None, max_length=200, description="Text search over title and description"),
):
    try:
        return await run_blocking(
            get_complaint_service().list_complaints,
            department=department,
            status=status_filter,
            citizen_id=citizen_id,
            search=q,
        )
    except Exception as e:
        logger.error(f"Failed to list complaints: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve complaints: {str(e)}",
        )


@router.get("/nearby", response_model=List[NearbyComplaint])
async def nearby_complaints(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0, description="Search radius in km (default 5)"),
):
    """
    Complaints within ``radius_km`` of a point, each with its distance.
    Complaints filed without coordinates are never included.
    """
    if radius_km is not None and radius_km > settings.MAX_NEARBY_RADIUS_KM:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"radius_km must be <= {settings.MAX_NEARBY_RADIUS_KM}",
        )
    reference = LocatedPoint(latitude=latitude, longitude=longitude)
    return await run_blocking(get_complaint_service().find_nearby, reference, radius_km)


@router.get("/{complaint_id}", response_model=ComplaintRecord)
async def get_complaint(complaint_id: str):
    return await run_blocking(get_complaint_service().get_complaint, complaint_id)
