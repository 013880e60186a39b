"""
Great-circle distance helpers used by the nearby-complaints query.
"""

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(origin, destination) -> float:
    """
    Distance in kilometers between two points using the haversine formula.

    Both arguments expose ``latitude`` and ``longitude`` in degrees
    (LocatedPoint or anything shaped like it). Coordinates are trusted;
    range validation happens where the points are captured.
    """
    lat1 = origin.latitude * math.pi / 180
    lat2 = destination.latitude * math.pi / 180
    dlat = (destination.latitude - origin.latitude) * math.pi / 180
    dlng = (destination.longitude - origin.longitude) * math.pi / 180

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    # Rounding can push a fraction past 1 for near-antipodal points
    a = min(a, 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
