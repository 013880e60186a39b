"""
Domain exceptions raised by the service layer.

Routes translate these into HTTP responses; services never raise HTTPException.
"""


class CivicDeskError(Exception):
    """Base class for all domain errors."""


class ComplaintNotFound(CivicDeskError):
    def __init__(self, complaint_id: str):
        self.complaint_id = complaint_id
        super().__init__(f"Complaint {complaint_id} not found")


class UnknownAccount(CivicDeskError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User account {user_id} not found")


class NotAuthorized(CivicDeskError):
    """The acting account lacks the role required for the operation."""


class LedgerError(CivicDeskError):
    """Base class for failures of the credit ledger."""


class AlreadyRated(LedgerError):
    def __init__(self, complaint_id: str, rating: str):
        self.complaint_id = complaint_id
        self.rating = rating
        super().__init__(f"Complaint {complaint_id} was already rated '{rating}'")


class NotResolved(LedgerError):
    def __init__(self, complaint_id: str, status: str):
        self.complaint_id = complaint_id
        self.status = status
        super().__init__(
            f"Complaint {complaint_id} is '{status}'; only resolved or closed complaints can be rated"
        )


class StorageContention(LedgerError):
    """Transient storage conflict (precondition failure, aborted write)."""
