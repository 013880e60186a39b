"""
Complaint repository - the only code that reads or writes the complaints collection.

Documents are stored flat, the coordinates as location_lat / location_lng:
{
    "title", "description", "department", "category", "priority", "status",
    "citizen_id", "citizen_name", "location_lat", "location_lng", "address",
    "attachments", "assigned_to", "resolution_notes", "quality_rating",
    "credits_awarded", "rated_by", "rated_at", "status_history",
    "created_at", "updated_at"
}
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from firebase_admin import firestore
from google.api_core import exceptions as api_exceptions

from app.config.firebase import get_db
from app.core.exceptions import ComplaintNotFound, StorageContention
from app.models.complaint import ComplaintRecord, ComplaintUpdate, LocatedPoint
from app.utils.firestore_helpers import snapshot_to_dict, where_filter

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

# Errors the backend reports for lost races or transient conflicts
CONTENTION_ERRORS = (
    api_exceptions.FailedPrecondition,
    api_exceptions.Aborted,
    api_exceptions.Conflict,
    api_exceptions.DeadlineExceeded,
    api_exceptions.ServiceUnavailable,
)


class ComplaintRepository:
    COLLECTION = "complaints"

    def __init__(self, db=None):
        self.db = db if db is not None else get_db()

    @property
    def collection(self):
        return self.db.collection(self.COLLECTION)

    def create(self, data: Dict[str, Any]) -> ComplaintRecord:
        """Store a new complaint. ``data`` may carry a LocatedPoint under ``location``."""
        document = dict(data)
        location = document.pop("location", None)
        document["location_lat"] = location.latitude if location else None
        document["location_lng"] = location.longitude if location else None
        document["created_at"] = firestore.SERVER_TIMESTAMP
        document["updated_at"] = firestore.SERVER_TIMESTAMP

        doc_ref = self.collection.document()
        try:
            doc_ref.set(document)
        except Exception as e:
            logger.error(f"Failed to save complaint to Firestore: {e}", exc_info=True)
            raise
        logger.info(f"Complaint saved to Firestore: {doc_ref.id}")
        return self._to_record(doc_ref.get())

    def get(self, complaint_id: str) -> Optional[ComplaintRecord]:
        snapshot = self.collection.document(complaint_id).get()
        if not snapshot.exists:
            return None
        return self._to_record(snapshot)

    def find(
        self,
        department: Optional[str] = None,
        status: Optional[str] = None,
        citizen_id: Optional[str] = None,
    ) -> List[ComplaintRecord]:
        """Equality-filtered listing, oldest first."""
        query = self.collection
        if department:
            query = where_filter(query, "department", "==", department)
        if status:
            query = where_filter(query, "status", "==", status)
        if citizen_id:
            query = where_filter(query, "citizen_id", "==", citizen_id)

        records = [self._to_record(snapshot) for snapshot in query.stream()]
        records.sort(key=lambda record: (record.created_at or _EPOCH, record.id))
        return records

    def update(
        self,
        complaint_id: str,
        update: ComplaintUpdate,
        expected_version=None,
    ) -> ComplaintRecord:
        """
        Apply a partial update.

        With ``expected_version`` (a record's ``version``) the write only succeeds
        if nobody else wrote the document since it was read.

        Raises:
            ComplaintNotFound: no such document
            StorageContention: precondition failed or the backend aborted the write
        """
        fields = update.changed_fields()
        fields["updated_at"] = firestore.SERVER_TIMESTAMP
        doc_ref = self.collection.document(complaint_id)

        try:
            if expected_version is not None:
                doc_ref.update(fields, option=self.db.write_option(last_update_time=expected_version))
            else:
                doc_ref.update(fields)
        except api_exceptions.NotFound:
            raise ComplaintNotFound(complaint_id)
        except CONTENTION_ERRORS as e:
            raise StorageContention(f"Complaint {complaint_id} write conflicted: {e}") from e

        return self._to_record(doc_ref.get())

    def _to_record(self, snapshot) -> ComplaintRecord:
        data = snapshot_to_dict(snapshot)
        lat = data.pop("location_lat", None)
        lng = data.pop("location_lng", None)
        data["location"] = LocatedPoint(latitude=lat, longitude=lng) if lat is not None and lng is not None else None
        data["version"] = snapshot.update_time
        return ComplaintRecord(**data)
