"""
User Service - account creation, lookup and the citizen credit view.
"""

from typing import Optional
import logging

from app.core.exceptions import NotAuthorized, UnknownAccount
from app.core.settings import settings
from app.models.user import CreditSummary, LocationUpdate, UserAccount, UserCreate, UserRole
from app.repositories.complaint_repository import ComplaintRepository
from app.repositories.user_repository import UserRepository
from app.services.credit_ledger import credit_level

logger = logging.getLogger(__name__)


class UserService:
    """
    Service for account management.
    Credits are seeded here once; afterwards only the credit ledger changes them.
    """

    def __init__(
        self,
        users: Optional[UserRepository] = None,
        complaints: Optional[ComplaintRepository] = None,
    ):
        self.users = users if users is not None else UserRepository()
        self.complaints = complaints if complaints is not None else ComplaintRepository()

    def create_account(self, user_data: UserCreate) -> UserAccount:
        """
        Create an account. Citizens start with the configured stipend, admins with none.
        """
        starting_credits = settings.CITIZEN_STARTING_CREDITS if user_data.role == UserRole.CITIZEN else 0
        account = self.users.create({
            "name": user_data.name.strip(),
            "email": user_data.email,
            "role": user_data.role.value,
            "department": user_data.department if user_data.role == UserRole.ADMIN else None,
            "credits": starting_credits,
            "starting_credits": starting_credits,
            "location": user_data.location,
            "address": user_data.address,
        })
        return account

    def get_account(self, user_id: str) -> UserAccount:
        account = self.users.get(user_id)
        if account is None:
            raise UnknownAccount(user_id)
        return account

    def require_admin(self, user_id: str) -> UserAccount:
        """
        Raises:
            UnknownAccount: no such account
            NotAuthorized: account is not an admin
        """
        account = self.get_account(user_id)
        if not account.is_admin:
            logger.warning(f"Admin action refused for non-admin account {user_id}")
            raise NotAuthorized(f"Account {user_id} is not an admin")
        return account

    def update_location(self, user_id: str, update: LocationUpdate) -> UserAccount:
        self.get_account(user_id)
        return self.users.update_location(user_id, update.location, update.address)

    def get_credit_summary(self, user_id: str) -> CreditSummary:
        account = self.get_account(user_id)
        rated = [c for c in self.complaints.find(citizen_id=user_id) if c.is_rated]
        return CreditSummary(
            user_id=account.id,
            credits=account.credits,
            level=credit_level(account.credits),
            rated_complaints=rated,
        )


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.

    Returns:
        UserService: The global user service instance
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
