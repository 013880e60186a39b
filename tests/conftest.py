# Ensures the project root is on sys.path so imports like `from app...` work.
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.config import firebase  # noqa: E402
from app.config.mock_firestore import MockFirestore  # noqa: E402
from app.models.complaint import AdminComplaintUpdate, ComplaintCreate, ComplaintStatus, LocatedPoint  # noqa: E402
from app.models.user import UserCreate, UserRole  # noqa: E402
from app.repositories.complaint_repository import ComplaintRepository  # noqa: E402
from app.repositories.user_repository import UserRepository  # noqa: E402
from app.services import complaint_service, credit_ledger, user_service  # noqa: E402
from app.services.geocoding import resolver  # noqa: E402


@pytest.fixture
def db(monkeypatch):
    """Fresh in-memory Firestore wired in place of the real client; service singletons reset."""
    mock = MockFirestore()
    monkeypatch.setattr(firebase, "db", mock)
    monkeypatch.setattr(complaint_service, "_complaint_service", None)
    monkeypatch.setattr(user_service, "_user_service", None)
    monkeypatch.setattr(credit_ledger, "_credit_ledger", None)
    monkeypatch.setattr(resolver, "_provider_instance", None)
    return mock


@pytest.fixture
def complaints_repo(db):
    return ComplaintRepository(db)


@pytest.fixture
def users_repo(db):
    return UserRepository(db)


@pytest.fixture
def users(users_repo, complaints_repo):
    return user_service.UserService(users_repo, complaints_repo)


@pytest.fixture
def complaints(complaints_repo, users_repo):
    return complaint_service.ComplaintService(complaints_repo, users_repo)


@pytest.fixture
def citizen(users):
    return users.create_account(UserCreate(name="Alice Johnson", email="alice@example.org"))


@pytest.fixture
def admin(users):
    return users.create_account(UserCreate(name="Admin User", role=UserRole.ADMIN, department="Utilities"))


@pytest.fixture
def file_complaint(complaints, citizen):
    """Factory: file a complaint for the citizen fixture (or another account)."""
    def _file(title="Broken Streetlight", location=None, citizen_id=None, department_id="utilities",
              category="Electricity", description="Streetlight not working for 3 days", address=None):
        return complaints.file_complaint(ComplaintCreate(
            citizen_id=citizen_id or citizen.id,
            title=title,
            description=description,
            department_id=department_id,
            category=category,
            location=location,
            address=address,
        ))
    return _file


@pytest.fixture
def resolved_complaint(complaints, admin, file_complaint):
    """A complaint already moved to 'resolved' by the admin fixture."""
    record = file_complaint(location=LocatedPoint(latitude=39.7392, longitude=-104.9903))
    return complaints.update_complaint(
        record.id, AdminComplaintUpdate(admin_id=admin.id, status=ComplaintStatus.RESOLVED)
    )
