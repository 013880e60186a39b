"""
Status Workflow - complaint status changes and their audit trail.

DESIGN PRINCIPLES:
- Admins may move a complaint to any status directly
- Setting the current status again is a no-op (no history entry)
- Every real change is recorded in status_history
- Only resolved/closed complaints can receive a quality rating
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from app.models.complaint import ComplaintStatus

logger = logging.getLogger(__name__)


class StatusWorkflowEngine:
    """
    Status bookkeeping for complaints.

    Lifecycle (conventional order, not enforced):
    submitted → in-review → in-progress → resolved → closed
    """

    RATEABLE_STATUSES = (ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED)
    PENDING_STATUSES = (ComplaintStatus.SUBMITTED, ComplaintStatus.IN_REVIEW)
    DONE_STATUSES = (ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED)

    @classmethod
    def is_change(cls, from_status: Optional[str], to_status: str) -> bool:
        """
        Check if setting ``to_status`` actually changes anything.

        Raises:
            ValueError: ``to_status`` is not a known status
        """
        to_enum = ComplaintStatus(to_status)
        return from_status is None or ComplaintStatus(from_status) != to_enum

    @classmethod
    def can_be_rated(cls, status: str) -> bool:
        try:
            return ComplaintStatus(status) in cls.RATEABLE_STATUSES
        except ValueError:
            return False

    @classmethod
    def create_status_history_entry(
        cls,
        from_status: Optional[str],
        to_status: str,
        changed_by: str,
        note: Optional[str] = None
    ) -> Dict:
        """
        Create a status history entry for the audit trail.

        Timestamps are ISO strings: Firestore rejects server timestamps inside arrays.
        """
        return {
            "from": from_status or "",
            "to": to_status,
            "changed_by": changed_by,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "note": note or ""
        }

    @classmethod
    def apply(
        cls,
        history: List[Dict],
        current_status: str,
        new_status: str,
        changed_by: str,
        note: Optional[str] = None
    ) -> Optional[List[Dict]]:
        """
        Return the extended history for a status change, or None when nothing changes.
        """
        if not cls.is_change(current_status, new_status):
            return None
        entry = cls.create_status_history_entry(current_status, new_status, changed_by, note)
        logger.info(f"Status change {current_status} → {new_status} by {changed_by}")
        return list(history) + [entry]
