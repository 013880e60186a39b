"""
Mock Firestore - in-process stand-in for the Firestore client.

Used when USE_MOCK_DB=true (local development without Firebase credentials)
and by the test suite. Implements only the client surface the repositories use:

- db.collection(name).document(id).get() / set() / update() / delete()
- db.collection(name).where(field, op, value).limit(n).stream()
- db.collections()
- db.write_option(last_update_time=...) preconditions on update()
- SERVER_TIMESTAMP, Increment and DELETE_FIELD sentinels

Errors are the same google.api_core exceptions the real client raises
(NotFound, FailedPrecondition), so repository error handling is exercised
unchanged. When a path is given, the whole store is persisted as JSON after
every write.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core import exceptions as api_exceptions

logger = logging.getLogger(__name__)


def _contains(container, value) -> bool:
    return isinstance(container, list) and value in container


_OPERATORS = {
    "==": lambda field, value: field == value,
    "!=": lambda field, value: field != value,
    "<": lambda field, value: field < value,
    "<=": lambda field, value: field <= value,
    ">": lambda field, value: field > value,
    ">=": lambda field, value: field >= value,
    "in": lambda field, value: field in value,
    "not-in": lambda field, value: field not in value,
    "array_contains": _contains,
}


class MockWriteOption:
    """Precondition for update(): the document's last update time must match."""

    def __init__(self, last_update_time=None):
        self.last_update_time = last_update_time


class MockDocumentSnapshot:
    def __init__(self, reference, data: Optional[Dict], create_time=None, update_time=None):
        self.reference = reference
        self._data = data
        self.create_time = create_time
        self.update_time = update_time

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        if self._data is None:
            return None
        return copy.deepcopy(self._data)

    def get(self, field_path: str):
        return (self._data or {}).get(field_path)


class MockDocumentReference:
    def __init__(self, store: "MockFirestore", collection_name: str, doc_id: str):
        self._store = store
        self._collection_name = collection_name
        self.id = doc_id

    @property
    def path(self) -> str:
        return f"{self._collection_name}/{self.id}"

    def get(self) -> MockDocumentSnapshot:
        return self._store._snapshot(self._collection_name, self.id)

    def set(self, document_data: Dict, merge: bool = False) -> None:
        self._store._set(self._collection_name, self.id, document_data, merge)

    def update(self, field_updates: Dict, option: Optional[MockWriteOption] = None) -> None:
        self._store._update(self._collection_name, self.id, field_updates, option)

    def delete(self) -> None:
        self._store._delete(self._collection_name, self.id)


class MockQuery:
    def __init__(self, store: "MockFirestore", collection_name: str,
                 filters: Optional[List[Tuple[str, str, Any]]] = None, limit_count: Optional[int] = None):
        self._store = store
        self._collection_name = collection_name
        self._filters = filters or []
        self._limit = limit_count

    def where(self, field_path: str, op_string: str, value) -> "MockQuery":
        if op_string not in _OPERATORS:
            raise ValueError(f"Unsupported operator for mock Firestore: {op_string}")
        return MockQuery(self._store, self._collection_name,
                         self._filters + [(field_path, op_string, value)], self._limit)

    def limit(self, count: int) -> "MockQuery":
        return MockQuery(self._store, self._collection_name, self._filters, count)

    def _matches(self, data: Dict) -> bool:
        for field_path, op_string, value in self._filters:
            if field_path not in data:
                return False
            try:
                if not _OPERATORS[op_string](data[field_path], value):
                    return False
            except TypeError:
                return False
        return True

    def stream(self) -> Iterator[MockDocumentSnapshot]:
        # Snapshot the ids first so writers may run while the caller iterates
        snapshots = []
        for doc_id, data in self._store._documents(self._collection_name):
            if self._matches(data):
                snapshots.append(self._store._snapshot(self._collection_name, doc_id))
                if self._limit is not None and len(snapshots) >= self._limit:
                    break
        return iter(snapshots)

    def get(self) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollectionReference(MockQuery):
    def __init__(self, store: "MockFirestore", collection_name: str):
        super().__init__(store, collection_name)

    @property
    def id(self) -> str:
        return self._collection_name

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._store, self._collection_name, document_id or uuid.uuid4().hex[:20])


class MockFirestore:
    """Dictionary-backed Firestore client. Thread-safe; optionally persisted to JSON."""

    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._lock = threading.RLock()
        self._data: Dict[str, Dict[str, Dict]] = {}
        self._times: Dict[Tuple[str, str], Tuple[datetime, datetime]] = {}
        self._clock = datetime.now(timezone.utc)
        if path and os.path.exists(path):
            self._load(path)

    # Public client surface

    def collection(self, collection_name: str) -> MockCollectionReference:
        return MockCollectionReference(self, collection_name)

    def collections(self) -> List[MockCollectionReference]:
        with self._lock:
            return [self.collection(name) for name, docs in self._data.items() if docs]

    @staticmethod
    def write_option(**kwargs) -> MockWriteOption:
        if set(kwargs) != {"last_update_time"}:
            raise TypeError("Mock Firestore only supports write_option(last_update_time=...)")
        return MockWriteOption(kwargs["last_update_time"])

    # Internals used by references and queries

    def _tick(self) -> datetime:
        # Strictly increasing so every write gets a distinct update_time
        now = datetime.now(timezone.utc)
        self._clock = now if now > self._clock else self._clock + timedelta(microseconds=1)
        return self._clock

    def _documents(self, collection_name: str) -> List[Tuple[str, Dict]]:
        with self._lock:
            return list(self._data.get(collection_name, {}).items())

    def _snapshot(self, collection_name: str, doc_id: str) -> MockDocumentSnapshot:
        with self._lock:
            reference = MockDocumentReference(self, collection_name, doc_id)
            data = self._data.get(collection_name, {}).get(doc_id)
            create_time, update_time = self._times.get((collection_name, doc_id), (None, None))
            return MockDocumentSnapshot(reference, copy.deepcopy(data), create_time, update_time)

    def _apply(self, existing: Dict, changes: Dict, now: datetime) -> Dict:
        result = copy.deepcopy(existing)
        for key, value in changes.items():
            if value is firestore.DELETE_FIELD:
                result.pop(key, None)
            elif value is firestore.SERVER_TIMESTAMP:
                result[key] = now
            elif isinstance(value, firestore.Increment):
                result[key] = (result.get(key) or 0) + value.value
            else:
                result[key] = copy.deepcopy(value)
        return result

    def _set(self, collection_name: str, doc_id: str, document_data: Dict, merge: bool) -> None:
        with self._lock:
            now = self._tick()
            docs = self._data.setdefault(collection_name, {})
            existing = docs.get(doc_id, {}) if merge else {}
            docs[doc_id] = self._apply(existing, document_data, now)
            create_time = self._times.get((collection_name, doc_id), (now, now))[0]
            self._times[(collection_name, doc_id)] = (create_time, now)
            self._flush()

    def _update(self, collection_name: str, doc_id: str, field_updates: Dict,
                option: Optional[MockWriteOption]) -> None:
        with self._lock:
            docs = self._data.get(collection_name, {})
            if doc_id not in docs:
                raise api_exceptions.NotFound(f"No document to update: {collection_name}/{doc_id}")
            create_time, update_time = self._times[(collection_name, doc_id)]
            if option is not None and option.last_update_time != update_time:
                raise api_exceptions.FailedPrecondition(
                    f"{collection_name}/{doc_id} was modified since {option.last_update_time}"
                )
            now = self._tick()
            docs[doc_id] = self._apply(docs[doc_id], field_updates, now)
            self._times[(collection_name, doc_id)] = (create_time, now)
            self._flush()

    def _delete(self, collection_name: str, doc_id: str) -> None:
        with self._lock:
            self._data.get(collection_name, {}).pop(doc_id, None)
            self._times.pop((collection_name, doc_id), None)
            self._flush()

    # JSON persistence

    def _load(self, path: str) -> None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Mock DB file {path} unreadable, starting empty: {e}")
            return
        now = self._tick()
        for collection_name, docs in raw.items():
            self._data[collection_name] = dict(docs)
            for doc_id in docs:
                self._times[(collection_name, doc_id)] = (now, now)
        logger.info(f"Mock DB loaded from {path}")

    def _flush(self) -> None:
        if not self._path:
            return

        def _default(value):
            if isinstance(value, datetime):
                return value.isoformat()
            return str(value)

        try:
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, default=_default, indent=2)
        except OSError as e:
            logger.error(f"Failed to persist mock DB to {self._path}: {e}")


def get_mock_db(path: Optional[str] = None) -> MockFirestore:
    """Create the mock client; ``path`` enables JSON persistence."""
    return MockFirestore(path)
