"""
Credit Ledger - civic credits awarded for rated complaints.

DESIGN PRINCIPLES:
- One canonical table maps a quality rating to a signed credit delta
- A complaint is rated exactly once; re-rating is rejected, never overwritten
- The complaint write is the source of truth; the account total follows it
- If the account cannot be credited because it does not exist, the complaint
  write is rolled back so rating and credits stay together
- Transient storage contention gets a bounded retry, then propagates

Concurrency:
- Ratings of the same complaint are serialized by a per-complaint lock
- Writes across processes are guarded by an optimistic version check
  (the complaint's last update time as a write precondition)
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Union
import logging
import threading

from pydantic import BaseModel

from app.core.exceptions import (
    AlreadyRated,
    ComplaintNotFound,
    NotResolved,
    StorageContention,
    UnknownAccount,
)
from app.core.settings import settings
from app.models.complaint import ComplaintRecord, ComplaintUpdate, QualityRating
from app.models.user import UserAccount
from app.repositories.complaint_repository import ComplaintRepository
from app.repositories.user_repository import UserRepository
from app.services.status_workflow import StatusWorkflowEngine

logger = logging.getLogger(__name__)


# Canonical credit table
CREDIT_TABLE: Dict[QualityRating, int] = {
    QualityRating.EXCELLENT: 50,
    QualityRating.GOOD: 25,
    QualityRating.POOR: 5,
    QualityRating.FAKE: -100,
}

# (minimum credits, level name), highest first
CREDIT_LEVELS = (
    (500, "Gold Citizen"),
    (250, "Silver Citizen"),
    (100, "Bronze Citizen"),
)
DEFAULT_CREDIT_LEVEL = "New Citizen"


def credit_delta(rating: Union[QualityRating, str]) -> int:
    """Signed credit change for a quality rating. Raises ValueError for unknown ratings."""
    return CREDIT_TABLE[QualityRating(rating)]


def credit_level(credits: int) -> str:
    for minimum, level in CREDIT_LEVELS:
        if credits >= minimum:
            return level
    return DEFAULT_CREDIT_LEVEL


class CreditAward(BaseModel):
    """Outcome of a successful rating."""
    complaint: ComplaintRecord
    user_id: str
    rating: QualityRating
    delta: int
    credits: int


class CreditLedger:
    """Applies quality ratings to complaints and their delta to the citizen's total."""

    def __init__(
        self,
        complaints: Optional[ComplaintRepository] = None,
        users: Optional[UserRepository] = None,
        max_retries: Optional[int] = None,
    ):
        self.complaints = complaints if complaints is not None else ComplaintRepository()
        self.users = users if users is not None else UserRepository()
        self.max_retries = settings.LEDGER_MAX_RETRIES if max_retries is None else max_retries
        # complaint id -> [lock, holders and waiters]; an entry lives only while in use
        self._locks: Dict[str, List] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, complaint_id: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.get(complaint_id)
            if entry is None:
                entry = self._locks[complaint_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[complaint_id]

    def award(self, complaint_id: str, rating: Union[QualityRating, str], rated_by: str) -> CreditAward:
        """
        Rate a complaint and credit its citizen.

        Args:
            complaint_id: Complaint to rate
            rating: Quality rating chosen by the admin
            rated_by: Admin account identifier

        Returns:
            CreditAward with the updated complaint and the citizen's new total

        Raises:
            ComplaintNotFound: no such complaint
            AlreadyRated: complaint already carries a rating (nothing changes)
            NotResolved: complaint is not resolved or closed yet
            UnknownAccount: citizen account missing (nothing is applied)
            StorageContention: contention persisted past the retry limit
        """
        rating = QualityRating(rating)
        delta = credit_delta(rating)

        with self._locked(complaint_id):
            complaint = self._write_rating(complaint_id, rating, delta, rated_by)
            try:
                account = self._apply_delta(complaint.citizen_id, delta)
            except UnknownAccount:
                self._rollback_rating(complaint)
                raise
            except StorageContention:
                logger.error(
                    f"Complaint {complaint_id} rated '{rating.value}' but crediting "
                    f"{complaint.citizen_id} failed; reconcile the account"
                )
                raise

        logger.info(
            f"Awarded {delta:+d} credits to {account.id} for '{rating.value}' complaint {complaint_id}"
        )
        return CreditAward(
            complaint=complaint,
            user_id=account.id,
            rating=rating,
            delta=delta,
            credits=account.credits,
        )

    def _write_rating(
        self, complaint_id: str, rating: QualityRating, delta: int, rated_by: str
    ) -> ComplaintRecord:
        attempt = 0
        while True:
            complaint = self.complaints.get(complaint_id)
            if complaint is None:
                raise ComplaintNotFound(complaint_id)
            if complaint.is_rated:
                raise AlreadyRated(complaint_id, complaint.quality_rating.value)
            if not StatusWorkflowEngine.can_be_rated(complaint.status.value):
                raise NotResolved(complaint_id, complaint.status.value)
            if self.users.get(complaint.citizen_id) is None:
                raise UnknownAccount(complaint.citizen_id)

            update = ComplaintUpdate(
                quality_rating=rating,
                credits_awarded=delta,
                rated_by=rated_by,
                rated_at=datetime.now(timezone.utc),
            )
            try:
                return self.complaints.update(complaint_id, update, expected_version=complaint.version)
            except StorageContention as e:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                logger.warning(f"Retrying rating of complaint {complaint_id} after contention: {e}")

    def _apply_delta(self, user_id: str, delta: int) -> UserAccount:
        attempt = 0
        while True:
            try:
                return self.users.increment_credits(user_id, delta)
            except StorageContention as e:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                logger.warning(f"Retrying credit update for {user_id} after contention: {e}")

    def _rollback_rating(self, complaint: ComplaintRecord) -> None:
        """
        Clear the rating written for a missing account. Never raises: the caller
        re-raises UnknownAccount either way.
        """
        update = ComplaintUpdate(quality_rating=None, credits_awarded=None, rated_by=None, rated_at=None)
        attempt = 0
        while True:
            try:
                self.complaints.update(complaint.id, update)
                break
            except StorageContention as e:
                if attempt >= self.max_retries:
                    logger.error(
                        f"Could not roll back rating of complaint {complaint.id} for missing account "
                        f"{complaint.citizen_id}: {e}"
                    )
                    return
                attempt += 1
                logger.warning(f"Retrying rollback of complaint {complaint.id} after contention: {e}")
        logger.warning(f"Rolled back rating of complaint {complaint.id}: account {complaint.citizen_id} missing")

    def reconcile(self, user_id: str) -> int:
        """
        Rebuild an account total from its complaints:
        starting credits plus every credit awarded to the citizen's complaints.

        Returns:
            The reconciled total
        """
        account = self.users.get(user_id)
        if account is None:
            raise UnknownAccount(user_id)

        awarded = sum(c.credits_awarded or 0 for c in self.complaints.find(citizen_id=user_id))
        expected = account.starting_credits + awarded
        if account.credits != expected:
            logger.warning(f"Reconciling {user_id}: credits {account.credits} -> {expected}")
            self.users.set_credits(user_id, expected)
        return expected


# Global ledger instance (singleton pattern)
_credit_ledger = None


def get_credit_ledger() -> CreditLedger:
    """
    Get or create CreditLedger singleton instance.

    Returns:
        CreditLedger: The global ledger instance
    """
    global _credit_ledger
    if _credit_ledger is None:
        _credit_ledger = CreditLedger()
    return _credit_ledger
