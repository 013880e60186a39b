"""
Firestore query and document helpers shared by the repositories.

NOTE: For firebase_admin SDK, we use positional arguments which still work.
The deprecation warning is just a warning - the functionality is still supported.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "department", "==", "Utilities")
        query = where_filter(query, "status", "==", "resolved")
    """
    return query.where(field_path, op_string, value)


def to_datetime(value) -> Optional[datetime]:
    """
    Parse the timestamp shapes found in stored documents to an aware UTC datetime.

    Handles datetime (including Firestore's DatetimeWithNanoseconds), ISO strings
    written by the JSON-backed mock database, and Timestamp-like objects.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if hasattr(value, "to_datetime"):
        return to_datetime(value.to_datetime())
    if hasattr(value, "timestamp"):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
    return None


def snapshot_to_dict(snapshot) -> Dict[str, Any]:
    """Document snapshot -> plain dict with ``id`` and parsed timestamps."""
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    for key in ("created_at", "updated_at", "rated_at"):
        if key in data:
            data[key] = to_datetime(data[key])
    return data
