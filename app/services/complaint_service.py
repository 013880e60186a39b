"""
Complaint service - intake, triage and reporting over the complaint repository.

DESIGN NOTE:
- Complaints are filed by existing citizen accounts only
- Department and category come from the department catalogue
- Status changes are recorded through the status workflow
- Rating and credits are NOT handled here (see credit_ledger)
"""

from typing import List, Optional
import logging

from app.core.exceptions import ComplaintNotFound, NotAuthorized, StorageContention, UnknownAccount
from app.core.settings import settings
from app.data.departments import DEPARTMENTS, get_department
from app.models.complaint import (
    AdminComplaintUpdate,
    ComplaintCreate,
    ComplaintRecord,
    ComplaintStats,
    ComplaintStatus,
    ComplaintUpdate,
    LocatedPoint,
    NearbyComplaint,
)
from app.repositories.complaint_repository import ComplaintRepository
from app.repositories.user_repository import UserRepository
from app.services.geocoding.resolver import resolve_address
from app.services.proximity import find_nearby_with_distance
from app.services.status_workflow import StatusWorkflowEngine

logger = logging.getLogger(__name__)


class ComplaintService:

    def __init__(
        self,
        complaints: Optional[ComplaintRepository] = None,
        users: Optional[UserRepository] = None,
    ):
        self.complaints = complaints if complaints is not None else ComplaintRepository()
        self.users = users if users is not None else UserRepository()

    def file_complaint(self, complaint_data: ComplaintCreate) -> ComplaintRecord:
        """
        File a new complaint on behalf of a citizen.

        Flow:
        1. Validate the citizen account and the department/category pair
        2. Fill a missing address from coordinates (best-effort)
        3. Store with status "submitted" and an initial history entry

        Raises:
            UnknownAccount: citizen does not exist
            NotAuthorized: account is not a citizen
            ValueError: unknown department or category
        """
        citizen = self.users.get(complaint_data.citizen_id)
        if citizen is None:
            raise UnknownAccount(complaint_data.citizen_id)
        if citizen.is_admin:
            raise NotAuthorized("Only citizen accounts can file complaints")

        department = get_department(complaint_data.department_id)
        if department is None:
            raise ValueError(f"Unknown department: {complaint_data.department_id}")
        if complaint_data.category not in department.categories:
            raise ValueError(
                f"Category '{complaint_data.category}' is not handled by {department.name}. "
                f"Allowed: {department.categories}"
            )

        address = complaint_data.address
        if not address and complaint_data.location is not None:
            address = resolve_address(complaint_data.location.latitude, complaint_data.location.longitude)

        initial_status = ComplaintStatus.SUBMITTED.value
        history = [StatusWorkflowEngine.create_status_history_entry(
            from_status=None,
            to_status=initial_status,
            changed_by=citizen.id,
            note="Complaint filed"
        )]

        record = self.complaints.create({
            "title": complaint_data.title.strip(),
            "description": complaint_data.description.strip(),
            "department": department.name,
            "category": complaint_data.category,
            "priority": complaint_data.priority.value,
            "status": initial_status,
            "citizen_id": citizen.id,
            "citizen_name": citizen.name,
            "location": complaint_data.location,
            "address": address,
            "attachments": list(complaint_data.attachments),
            "assigned_to": None,
            "resolution_notes": None,
            "quality_rating": None,
            "credits_awarded": None,
            "rated_by": None,
            "rated_at": None,
            "status_history": history,
        })
        logger.info(f"Complaint {record.id} filed by {citizen.id} with {department.name}")
        return record

    def get_complaint(self, complaint_id: str) -> ComplaintRecord:
        record = self.complaints.get(complaint_id)
        if record is None:
            raise ComplaintNotFound(complaint_id)
        return record

    def list_complaints(
        self,
        department: Optional[str] = None,
        status: Optional[ComplaintStatus] = None,
        citizen_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[ComplaintRecord]:
        """
        List complaints with optional filters.

        ``department`` accepts a catalogue id or a department name.
        ``search`` matches title or description, case-insensitively.
        """
        department_name = None
        if department:
            known = get_department(department)
            department_name = known.name if known else department

        records = self.complaints.find(
            department=department_name,
            status=status.value if status else None,
            citizen_id=citizen_id,
        )

        if search and search.strip():
            needle = search.strip().lower()
            records = [
                r for r in records
                if needle in r.title.lower() or needle in r.description.lower()
            ]
        return records

    def update_complaint(self, complaint_id: str, request: AdminComplaintUpdate) -> ComplaintRecord:
        """
        Apply an admin triage update. Any status may be set directly;
        real status changes are appended to the status history.

        The write is conditional on the version read; on conflict the complaint
        is re-read and the update re-applied.

        Raises:
            ComplaintNotFound: no such complaint
            StorageContention: concurrent writes persisted past the retry limit
        """
        attempt = 0
        while True:
            current = self.get_complaint(complaint_id)
            update = self._triage_update(current, request)
            if not update.model_fields_set:
                return current
            try:
                return self.complaints.update(complaint_id, update, expected_version=current.version)
            except StorageContention as e:
                if attempt >= settings.LEDGER_MAX_RETRIES:
                    raise
                attempt += 1
                logger.warning(f"Retrying triage of complaint {complaint_id} after contention: {e}")

    def _triage_update(self, current: ComplaintRecord, request: AdminComplaintUpdate) -> ComplaintUpdate:
        update = ComplaintUpdate()

        if request.status is not None:
            history = StatusWorkflowEngine.apply(
                current.status_history,
                current.status.value,
                request.status.value,
                changed_by=request.admin_id,
                note=request.note,
            )
            if history is not None:
                update.status = request.status
                update.status_history = history

        if request.priority is not None:
            update.priority = request.priority
        if request.assigned_to is not None:
            update.assigned_to = request.assigned_to
        if request.resolution_notes is not None:
            update.resolution_notes = request.resolution_notes
        return update

    def get_stats(self, department: Optional[str] = None, citizen_id: Optional[str] = None) -> ComplaintStats:
        records = self.list_complaints(department=department, citizen_id=citizen_id)
        stats = ComplaintStats(
            total=len(records),
            pending=sum(1 for r in records if r.status in StatusWorkflowEngine.PENDING_STATUSES),
            in_progress=sum(1 for r in records if r.status == ComplaintStatus.IN_PROGRESS),
            resolved=sum(1 for r in records if r.status in StatusWorkflowEngine.DONE_STATUSES),
            by_department={d.name: 0 for d in DEPARTMENTS},
        )
        for record in records:
            stats.by_department[record.department] = stats.by_department.get(record.department, 0) + 1
        return stats

    def find_nearby(self, reference: LocatedPoint, radius_km: Optional[float] = None) -> List[NearbyComplaint]:
        """Complaints within ``radius_km`` (default from settings) of ``reference``."""
        if radius_km is None:
            radius_km = settings.DEFAULT_NEARBY_RADIUS_KM
        return find_nearby_with_distance(reference, self.complaints.find(), radius_km)


# Global service instance (singleton pattern)
_complaint_service = None


def get_complaint_service() -> ComplaintService:
    """Get or create ComplaintService singleton."""
    global _complaint_service
    if _complaint_service is None:
        _complaint_service = ComplaintService()
    return _complaint_service
