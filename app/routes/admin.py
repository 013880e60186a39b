"""
Admin endpoints - complaint triage and civic credit awards.

SCOPE OF ADMIN:
✅ Set complaint status (any status, directly)
✅ Set priority, assignee and resolution notes
✅ Rate resolved complaints once, which awards or deducts credits
✅ Reconcile a citizen's credit total from their rated complaints

❌ NOT edit complaint content
❌ NOT delete complaints
❌ NOT re-rate a complaint

Every request names the acting admin (admin_id); the account must exist and
have the admin role. This is a role check, not authentication.
"""

from typing import Optional
import logging

from fastapi import APIRouter, HTTPException, Query, status

from app.core.exceptions import CivicDeskError
from app.models.complaint import AdminComplaintUpdate, ComplaintStats, RatingRequest
from app.services.complaint_service import get_complaint_service
from app.services.credit_ledger import CREDIT_TABLE, get_credit_ledger
from app.services.user_service import get_user_service
from app.utils.concurrency import run_blocking

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.patch("/complaints/{complaint_id}")
async def update_complaint(complaint_id: str, request: AdminComplaintUpdate):
    """
    Triage a complaint.

    **Status Meanings:**
    - submitted: filed, awaiting review
    - in-review: being assessed by the department
    - in-progress: work under way
    - resolved: issue fixed; the complaint can now be rated
    - closed: final state

    Admins may set any status directly. Setting the current status again is a no-op.

    Raises:
        403: admin_id is not an admin
        404: complaint or admin not found
    """
    try:
        await run_blocking(get_user_service().require_admin, request.admin_id)
        updated = await run_blocking(get_complaint_service().update_complaint, complaint_id, request)
        return {
            "success": True,
            "message": f"Complaint {complaint_id} updated",
            "complaint": updated
        }
    except (HTTPException, CivicDeskError):
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update complaint {complaint_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update complaint: {str(e)}"
        )


@router.post("/complaints/{complaint_id}/rating")
async def rate_complaint(complaint_id: str, request: RatingRequest):
    """
    Rate a resolved complaint and apply the credit change to its citizen.

    **Credit table:** excellent +50, good +25, poor +5, fake -100

    Raises:
        404: complaint, admin or citizen account not found (nothing applied)
        409: complaint already rated, or not resolved/closed yet
        503: storage contention persisted after retry
    """
    try:
        await run_blocking(get_user_service().require_admin, request.admin_id)
        award = await run_blocking(get_credit_ledger().award, complaint_id, request.rating, request.admin_id)
        return {
            "success": True,
            "message": f"{award.delta:+d} credits applied for '{award.rating.value}' complaint",
            "award": award
        }
    except (HTTPException, CivicDeskError):
        raise
    except Exception as e:
        logger.error(f"Failed to rate complaint {complaint_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to rate complaint: {str(e)}"
        )


@router.get("/stats", response_model=ComplaintStats)
async def get_stats(
    admin_id: str = Query(..., description="Acting admin account"),
    department: Optional[str] = Query(None, description="Department id or name"),
):
    """Totals for the admin dashboard: pending, in progress, resolved and per department."""
    await run_blocking(get_user_service().require_admin, admin_id)
    return await run_blocking(get_complaint_service().get_stats, department=department)


@router.post("/users/{user_id}/reconcile-credits")
async def reconcile_credits(user_id: str, admin_id: str = Query(..., description="Acting admin account")):
    """Recompute a citizen's credits as starting credits plus all credits awarded to their complaints."""
    await run_blocking(get_user_service().require_admin, admin_id)
    credits = await run_blocking(get_credit_ledger().reconcile, user_id)
    return {
        "success": True,
        "user_id": user_id,
        "credits": credits
    }


@router.get("/credit-table")
async def credit_table():
    return {rating.value: delta for rating, delta in CREDIT_TABLE.items()}
