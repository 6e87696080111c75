"""
Shared fixtures: place factories and fake provider clients
"""

import random
from unittest.mock import Mock

import pytest
from geopy.location import Location

from tripengine.core.cache import TTLCache
from tripengine.schemas import Catalog, GeoPoint, Place, PlaceCategory, RestaurantTiers


def make_place(n, category=PlaceCategory.RESTAURANT, **overrides):
    """Place with a unique id/name/address derived from `n`"""
    prefix = "r" if category == PlaceCategory.RESTAURANT else "a"
    fields = dict(
        provider_place_id=f"{prefix}-{n}",
        name=f"{category.value.title()} {n}",
        category=category,
        address=f"{n} Main Street",
        coordinates=GeoPoint(lat=40.0, lng=-74.0),
        rating=4.0,
        price_level=2,
    )
    fields.update(overrides)
    return Place(**fields)


def make_catalog(n_restaurants=10, n_activities=10, destination="Springfield"):
    restaurants = [make_place(i) for i in range(n_restaurants)]
    activities = [make_place(i, PlaceCategory.ACTIVITY, address=f"{i} Park Avenue") for i in range(n_activities)]
    return Catalog(
        destination=destination,
        restaurants=RestaurantTiers(
            all=restaurants,
            fine=[p for p in restaurants if p.price_level == 3],
            casual=[p for p in restaurants if p.price_level == 1],
        ),
        activities=activities,
    )


def place_record(place_id, name, lat, lng, types=("restaurant", "food"), price_level=2, rating=4.2):
    """Raw text-search record as returned by googlemaps.Client.places"""
    return {
        "place_id": place_id,
        "name": name,
        "formatted_address": f"{name} Street",
        "rating": rating,
        "price_level": price_level,
        "types": list(types) + ["establishment", "point_of_interest"],
        "geometry": {"location": {"lat": lat, "lng": lng}},
    }


def geopy_location(address, lat, lng, place_id="geo-place"):
    return Location(address, (lat, lng), {"place_id": place_id})


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def cache():
    return TTLCache(ttl_seconds=3600)


@pytest.fixture
def places_client():
    client = Mock()
    client.places.return_value = {"results": [], "status": "ZERO_RESULTS"}
    return client
