"""
Nearby complaints - radius filter over located complaints.

Complaints without coordinates are never "nearby", whatever the radius.
The radius is inclusive and results keep the input order.
"""

from typing import Iterable, List

from app.models.complaint import ComplaintRecord, LocatedPoint, NearbyComplaint
from app.utils.geo import haversine_km

DEFAULT_RADIUS_KM = 5.0


def find_nearby_with_distance(
    reference: LocatedPoint,
    complaints: Iterable[ComplaintRecord],
    radius_km: float = DEFAULT_RADIUS_KM,
) -> List[NearbyComplaint]:
    nearby = []
    for complaint in complaints:
        if complaint.location is None:
            continue
        distance = haversine_km(reference, complaint.location)
        if distance <= radius_km:
            nearby.append(NearbyComplaint(complaint=complaint, distance_km=round(distance, 3)))
    return nearby


def find_nearby(
    reference: LocatedPoint,
    complaints: Iterable[ComplaintRecord],
    radius_km: float = DEFAULT_RADIUS_KM,
) -> List[ComplaintRecord]:
    """Complaints located within ``radius_km`` of ``reference``, as a new list."""
    return [entry.complaint for entry in find_nearby_with_distance(reference, complaints, radius_km)]
