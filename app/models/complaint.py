"""
Pydantic models for citizen complaints.
These models handle validation for complaint submission, updates and responses.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum


class ComplaintStatus(str, Enum):
    """Lifecycle states. Admins may set any state directly."""
    SUBMITTED = "submitted"
    IN_REVIEW = "in-review"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ComplaintPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class QualityRating(str, Enum):
    """Admin judgment of a complaint's usefulness, drives the credit delta."""
    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"
    FAKE = "fake"


class LocatedPoint(BaseModel):
    """A captured geographic position. Immutable once created."""
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")

    class Config:
        frozen = True


class ComplaintCreate(BaseModel):
    """
    Model for filing a new complaint (incoming POST request).
    Department is the catalogue id (e.g. "utilities"); category must belong to it.
    """
    citizen_id: str = Field(..., min_length=1, description="Account filing the complaint")
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=5, max_length=2000)
    department_id: str = Field(..., min_length=1, description="Department catalogue id")
    category: str = Field(..., min_length=1, max_length=100)
    priority: ComplaintPriority = Field(default=ComplaintPriority.MEDIUM)
    location: Optional[LocatedPoint] = Field(None, description="Coordinates, if the citizen shared them")
    address: Optional[str] = Field(None, max_length=500, description="Free-text address")
    attachments: List[str] = Field(default_factory=list, description="Photo/document URLs")

    class Config:
        json_schema_extra = {
            "example": {
                "citizen_id": "u-123",
                "title": "Broken Streetlight",
                "description": "Streetlight not working for 3 days",
                "department_id": "utilities",
                "category": "Electricity",
                "priority": "medium",
                "location": {"latitude": 39.7392, "longitude": -104.9903},
                "address": "456 Oak Ave, Springfield",
                "attachments": [],
            }
        }
        extra = "ignore"


class ComplaintUpdate(BaseModel):
    """
    Tagged partial update: every field that may ever change on a stored complaint.
    Only fields explicitly set are written.
    """
    status: Optional[ComplaintStatus] = None
    priority: Optional[ComplaintPriority] = None
    assigned_to: Optional[str] = None
    resolution_notes: Optional[str] = None
    address: Optional[str] = None
    quality_rating: Optional[QualityRating] = None
    credits_awarded: Optional[int] = None
    rated_by: Optional[str] = None
    rated_at: Optional[datetime] = None
    status_history: Optional[List[Dict[str, Any]]] = None

    def changed_fields(self) -> Dict[str, Any]:
        """Firestore-ready dict of the explicitly set fields (None included when set)."""
        fields = self.model_dump(exclude_unset=True)
        for key, value in fields.items():
            if isinstance(value, Enum):
                fields[key] = value.value
        return fields


class AdminComplaintUpdate(BaseModel):
    """Admin triage request. Rating fields are only writable through the rating endpoint."""
    admin_id: str = Field(..., min_length=1, description="Acting admin account")
    status: Optional[ComplaintStatus] = None
    priority: Optional[ComplaintPriority] = None
    assigned_to: Optional[str] = Field(None, max_length=100)
    resolution_notes: Optional[str] = Field(None, max_length=2000)
    note: Optional[str] = Field(None, max_length=500, description="Optional note for the status history")


class RatingRequest(BaseModel):
    admin_id: str = Field(..., min_length=1, description="Acting admin account")
    rating: QualityRating


class ComplaintRecord(BaseModel):
    """
    A stored complaint as returned by the repository and the API.

    ``credits_awarded`` is present exactly when ``quality_rating`` is.
    """
    id: str = Field(..., description="Firestore document ID")
    title: str
    description: str
    department: str
    category: str
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    status: ComplaintStatus = ComplaintStatus.SUBMITTED
    citizen_id: str
    citizen_name: str = ""
    location: Optional[LocatedPoint] = None
    address: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
    assigned_to: Optional[str] = None
    resolution_notes: Optional[str] = None
    quality_rating: Optional[QualityRating] = None
    credits_awarded: Optional[int] = None
    rated_by: Optional[str] = None
    rated_at: Optional[datetime] = None
    status_history: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Storage revision for optimistic concurrency (never serialized)
    version: Optional[Any] = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def _rating_and_credits_together(self):
        if (self.quality_rating is None) != (self.credits_awarded is None):
            raise ValueError("quality_rating and credits_awarded must be set together")
        return self

    @property
    def is_rated(self) -> bool:
        return self.quality_rating is not None


class NearbyComplaint(BaseModel):
    """Complaint inside the search radius, with its distance from the search center."""
    complaint: ComplaintRecord
    distance_km: float


class ComplaintStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    resolved: int = 0
    by_department: Dict[str, int] = Field(default_factory=dict)
