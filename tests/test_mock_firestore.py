import pytest
from firebase_admin import firestore
from google.api_core import exceptions as api_exceptions

from app.config.mock_firestore import MockFirestore


@pytest.fixture
def store():
    return MockFirestore()


def test_set_then_get_roundtrips_a_copy(store):
    ref = store.collection("users").document("u1")
    ref.set({"name": "Jane", "tags": ["a"]})

    snapshot = ref.get()
    assert snapshot.exists
    assert snapshot.id == "u1"
    data = snapshot.to_dict()
    data["tags"].append("b")
    assert ref.get().to_dict()["tags"] == ["a"]


def test_missing_document_snapshot(store):
    snapshot = store.collection("users").document("nobody").get()
    assert not snapshot.exists
    assert snapshot.to_dict() is None


def test_generated_ids_are_unique(store):
    col = store.collection("complaints")
    assert col.document().id != col.document().id


def test_update_missing_document_raises_not_found(store):
    with pytest.raises(api_exceptions.NotFound):
        store.collection("users").document("ghost").update({"credits": 1})


def test_sentinels_are_applied(store):
    ref = store.collection("users").document("u1")
    ref.set({"credits": 100, "nickname": "jj", "created_at": firestore.SERVER_TIMESTAMP})
    ref.update({"credits": firestore.Increment(-100), "nickname": firestore.DELETE_FIELD})
    ref.update({"credits": firestore.Increment(25), "bonus": firestore.Increment(5)})

    data = ref.get().to_dict()
    assert data["credits"] == 25
    assert data["bonus"] == 5
    assert "nickname" not in data
    assert data["created_at"] is not None


def test_update_time_precondition(store):
    ref = store.collection("complaints").document("c1")
    ref.set({"status": "resolved"})
    seen = ref.get().update_time

    ref.update({"status": "closed"}, option=store.write_option(last_update_time=seen))
    with pytest.raises(api_exceptions.FailedPrecondition):
        ref.update({"status": "resolved"}, option=store.write_option(last_update_time=seen))
    assert ref.get().to_dict()["status"] == "closed"


def test_every_write_gets_a_new_update_time(store):
    ref = store.collection("complaints").document("c1")
    ref.set({"n": 0})
    times = set()
    for n in range(20):
        ref.update({"n": n})
        times.add(ref.get().update_time)
    assert len(times) == 20


def test_where_and_limit(store):
    col = store.collection("complaints")
    for i, status in enumerate(["submitted", "resolved", "resolved", "closed"]):
        col.document(f"c{i}").set({"status": status, "rank": i})

    resolved = [s.id for s in col.where("status", "==", "resolved").stream()]
    assert resolved == ["c1", "c2"]
    assert [s.id for s in col.where("rank", ">=", 1).limit(2).stream()] == ["c1", "c2"]
    assert [s.id for s in col.where("status", "in", ["closed", "submitted"]).get()] == ["c0", "c3"]


def test_where_skips_documents_missing_the_field(store):
    col = store.collection("users")
    col.document("a").set({"credits": 5})
    col.document("b").set({"name": "no credits"})
    assert [s.id for s in col.where("credits", "<", 10).stream()] == ["a"]


def test_collections_lists_only_non_empty(store):
    store.collection("users").document("u1").set({"name": "x"})
    store.collection("complaints").document("c1").set({"title": "y"})
    store.collection("complaints").document("c1").delete()
    assert [c.id for c in store.collections()] == ["users"]


def test_json_persistence_roundtrip(tmp_path):
    path = str(tmp_path / "mock_db.json")
    first = MockFirestore(path)
    first.collection("users").document("u1").set({"name": "Jane", "created_at": firestore.SERVER_TIMESTAMP})

    second = MockFirestore(path)
    data = second.collection("users").document("u1").get().to_dict()
    assert data["name"] == "Jane"
    assert isinstance(data["created_at"], str)


def test_unreadable_persistence_file_starts_empty(tmp_path):
    path = tmp_path / "mock_db.json"
    path.write_text("{not json")
    store = MockFirestore(str(path))
    assert store.collections() == []
