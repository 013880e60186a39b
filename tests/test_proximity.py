from app.models.complaint import ComplaintRecord, LocatedPoint
from app.services.proximity import DEFAULT_RADIUS_KM, find_nearby, find_nearby_with_distance
from app.utils.geo import haversine_km

CENTER = LocatedPoint(latitude=39.7392, longitude=-104.9903)


def make_record(complaint_id, latitude=None, longitude=None):
    location = None
    if latitude is not None:
        location = LocatedPoint(latitude=latitude, longitude=longitude)
    return ComplaintRecord(
        id=complaint_id,
        title=f"Complaint {complaint_id}",
        description="Something is broken",
        department="Utilities",
        category="Water",
        citizen_id="c-1",
        location=location,
    )


RECORDS = [
    make_record("city-hall", 39.7392, -104.9903),
    make_record("no-location"),
    make_record("central-park", 39.7412, -104.9923),
    make_record("boulder", 40.0150, -105.2705),
    make_record("aurora", 39.7294, -104.8319),
]


def ids(records):
    return [r.id for r in records]


def test_springfield_scenario_radius_one_km_returns_both():
    assert ids(find_nearby(CENTER, RECORDS, radius_km=1)) == ["city-hall", "central-park"]


def test_springfield_scenario_radius_hundred_meters_returns_only_center():
    assert ids(find_nearby(CENTER, RECORDS, radius_km=0.1)) == ["city-hall"]


def test_result_is_exactly_the_records_within_radius():
    for radius in (0.05, 1, 5, 20, 40, 500):
        expected = [
            r.id for r in RECORDS
            if r.location is not None and haversine_km(CENTER, r.location) <= radius
        ]
        assert ids(find_nearby(CENTER, RECORDS, radius_km=radius)) == expected


def test_growing_radius_never_drops_a_record():
    previous = set()
    for radius in (0, 0.1, 0.3, 1, 5, 14, 30, 100, 20000):
        current = set(ids(find_nearby(CENTER, RECORDS, radius_km=radius)))
        assert previous <= current
        previous = current


def test_unlocated_records_never_returned():
    for radius in (0, 1, 100, 50000):
        assert "no-location" not in ids(find_nearby(CENTER, RECORDS, radius_km=radius))


def test_radius_is_inclusive():
    target = RECORDS[2]
    exact = haversine_km(CENTER, target.location)
    assert ids(find_nearby(CENTER, [target], radius_km=exact)) == ["central-park"]


def test_zero_radius_keeps_only_coincident_points():
    assert ids(find_nearby(CENTER, RECORDS, radius_km=0)) == ["city-hall"]


def test_default_radius_is_five_km():
    assert DEFAULT_RADIUS_KM == 5
    assert ids(find_nearby(CENTER, RECORDS)) == ids(find_nearby(CENTER, RECORDS, radius_km=5))


def test_inputs_are_not_mutated_and_a_new_list_is_returned():
    records = list(RECORDS)
    result = find_nearby(CENTER, records, radius_km=10000)
    assert records == RECORDS
    assert result is not records
    result.clear()
    assert len(records) == len(RECORDS)


def test_accepts_any_iterable():
    assert ids(find_nearby(CENTER, iter(RECORDS), radius_km=1)) == ["city-hall", "central-park"]


def test_distance_is_reported_with_each_match():
    entries = find_nearby_with_distance(CENTER, RECORDS, radius_km=1)
    assert entries[0].distance_km == 0
    assert 0.2 < entries[1].distance_km < 0.35
