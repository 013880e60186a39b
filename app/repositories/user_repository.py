"""
User repository - account documents in the users collection.

``credits`` is written here only through increment_credits / set_credits,
both of which are called exclusively by the credit ledger.
"""

from typing import Any, Dict, Optional
import logging

from firebase_admin import firestore
from google.api_core import exceptions as api_exceptions

from app.config.firebase import get_db
from app.core.exceptions import StorageContention, UnknownAccount
from app.models.complaint import LocatedPoint
from app.models.user import UserAccount
from app.repositories.complaint_repository import CONTENTION_ERRORS
from app.utils.firestore_helpers import snapshot_to_dict

logger = logging.getLogger(__name__)


class UserRepository:
    COLLECTION = "users"

    def __init__(self, db=None):
        self.db = db if db is not None else get_db()

    @property
    def collection(self):
        return self.db.collection(self.COLLECTION)

    def create(self, data: Dict[str, Any]) -> UserAccount:
        document = dict(data)
        location = document.pop("location", None)
        document["location_lat"] = location.latitude if location else None
        document["location_lng"] = location.longitude if location else None
        document["created_at"] = firestore.SERVER_TIMESTAMP
        document["updated_at"] = firestore.SERVER_TIMESTAMP

        user_ref = self.collection.document()
        user_ref.set(document)
        logger.info(f"User created: {user_ref.id}")
        return self._to_account(user_ref.get())

    def get(self, user_id: str) -> Optional[UserAccount]:
        snapshot = self.collection.document(user_id).get()
        if not snapshot.exists:
            return None
        return self._to_account(snapshot)

    def update_location(self, user_id: str, location: LocatedPoint, address: Optional[str]) -> UserAccount:
        return self._update(user_id, {
            "location_lat": location.latitude,
            "location_lng": location.longitude,
            "address": address,
        })

    def increment_credits(self, user_id: str, delta: int) -> UserAccount:
        """
        Add ``delta`` (possibly negative) to the stored total with a server-side increment.

        Raises:
            UnknownAccount: the account does not exist
            StorageContention: transient backend conflict
        """
        return self._update(user_id, {"credits": firestore.Increment(delta)})

    def set_credits(self, user_id: str, credits: int) -> UserAccount:
        return self._update(user_id, {"credits": credits})

    def _update(self, user_id: str, fields: Dict[str, Any]) -> UserAccount:
        fields["updated_at"] = firestore.SERVER_TIMESTAMP
        user_ref = self.collection.document(user_id)
        try:
            user_ref.update(fields)
        except api_exceptions.NotFound:
            raise UnknownAccount(user_id)
        except CONTENTION_ERRORS as e:
            raise StorageContention(f"User {user_id} write conflicted: {e}") from e
        return self._to_account(user_ref.get())

    def _to_account(self, snapshot) -> UserAccount:
        data = snapshot_to_dict(snapshot)
        lat = data.pop("location_lat", None)
        lng = data.pop("location_lng", None)
        data["location"] = LocatedPoint(latitude=lat, longitude=lng) if lat is not None and lng is not None else None
        return UserAccount(**data)
