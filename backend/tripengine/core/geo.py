from math import asin, cos, radians, sin, sqrt
from typing import Iterable, List

from tripengine.schemas import GeoPoint, Place

EARTH_RADIUS_MILES = 3959
METERS_PER_MILE = 1609.34


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def miles_to_meters(miles: float) -> float:
    return miles * METERS_PER_MILE


def haversine(p1: GeoPoint, p2: GeoPoint) -> float:
    """Great-circle distance in miles between two points."""
    d_lat = radians(p2.lat - p1.lat)
    d_lng = radians(p2.lng - p1.lng)
    a = (
        sin(d_lat / 2) ** 2
        + cos(radians(p1.lat)) * cos(radians(p2.lat)) * sin(d_lng / 2) ** 2
    )
    # rounding can push `a` a hair past 1.0 for near-antipodal pairs
    return 2 * EARTH_RADIUS_MILES * asin(sqrt(min(1.0, a)))


def filter_by_distance(
    places:             Iterable[Place],
    center:             GeoPoint,
    max_distance_miles: float,
) -> List[Place]:
    """
    Keep only places within `max_distance_miles` of `center`.

    Provider search radii are advisory, so the distance is recomputed here:
     - places without coordinates are dropped
     - kept places are copies annotated with `distance_from_center`
       (miles, one decimal)

    Input order is preserved.
    """
    kept = []
    for place in places:
        if place.coordinates is None:
            continue

        distance = haversine(center, place.coordinates)
        if distance > max_distance_miles:
            continue

        kept.append(place.model_copy(
            update={"distance_from_center": round(distance, 1)}
        ))

    return kept
