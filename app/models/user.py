"""
User account models.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from enum import Enum

from app.models.complaint import ComplaintRecord, LocatedPoint


class UserRole(str, Enum):
    CITIZEN = "citizen"
    ADMIN = "admin"


class UserCreate(BaseModel):
    """Model for creating a new account."""
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: Optional[str] = Field(None, max_length=200, description="Contact email (optional)")
    role: UserRole = Field(default=UserRole.CITIZEN)
    department: Optional[str] = Field(None, max_length=100, description="Department an admin works for")
    location: Optional[LocatedPoint] = None
    address: Optional[str] = Field(None, max_length=500)


class LocationUpdate(BaseModel):
    location: LocatedPoint
    address: Optional[str] = Field(None, max_length=500)


class UserAccount(BaseModel):
    """Stored account. ``credits`` changes only through the credit ledger."""
    id: str = Field(..., description="Firestore document ID")
    name: str
    email: Optional[str] = None
    role: UserRole = UserRole.CITIZEN
    department: Optional[str] = None
    credits: int = 0
    starting_credits: int = 0
    location: Optional[LocatedPoint] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class CreditSummary(BaseModel):
    """Citizen-facing view of the civic credit balance."""
    user_id: str
    credits: int
    level: str
    rated_complaints: List[ComplaintRecord] = Field(default_factory=list)
