"""Merge per-city search results into one trip-wide catalog."""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from tripengine.schemas import (
    Catalog, CityResult, DestinationQuery, Place, PlaceCategory, RestaurantTiers,
)


@dataclass(frozen=True)
class Aggregation:
    """Tagged aggregation outcome; has_real_data is False when no city resolved"""
    has_real_data: bool
    catalog: Catalog


def deduplicate_places(places: Iterable[Place]) -> List[Place]:
    """Drop repeats by provider place id, keeping first occurrence.

    Places without a provider id have no reliable key and are always kept.
    """
    seen = set()
    unique = []
    for place in places:
        pid = place.provider_place_id
        if pid:
            if pid in seen:
                continue
            seen.add(pid)
        unique.append(place)
    return unique


def aggregate(city_results: Sequence[CityResult], destination: str) -> Aggregation:
    if not city_results:
        return Aggregation(has_real_data=False, catalog=Catalog(destination=destination))

    def merged(select) -> List[Place]:
        return deduplicate_places(p for result in city_results for p in select(result))

    catalog = Catalog(
        destination=destination,
        restaurants=RestaurantTiers(
            all=merged(lambda r: r.restaurants.all),
            fine=merged(lambda r: r.restaurants.fine),
            casual=merged(lambda r: r.restaurants.casual),
        ),
        activities=merged(lambda r: r.activities),
    )
    return Aggregation(has_real_data=True, catalog=catalog)


def synthetic_catalog(query: DestinationQuery) -> Catalog:
    """Placeholder catalog used when no provider data is available"""
    primary = query.primary or "your destination"

    def restaurant(key, name, address, rating, price_level, cuisine):
        return Place(
            provider_place_id=f"synthetic:{key}",
            name=name,
            category=PlaceCategory.RESTAURANT,
            address=address,
            rating=rating,
            price_level=price_level,
            tags=frozenset({cuisine}),
        )

    def activity(key, name, address, rating, tags):
        return Place(
            provider_place_id=f"synthetic:{key}",
            name=name,
            category=PlaceCategory.ACTIVITY,
            address=address,
            rating=rating,
            tags=frozenset(tags),
        )

    fine = restaurant("fine-dining", "Fine Dining Restaurant", f"Upscale District, {primary}", 4.5, 3, "International")
    casual = restaurant("local-eatery", "Popular Local Eatery", f"Tourist Area, {primary}", 4.1, 1, "Local street food")

    return Catalog(
        destination=primary,
        restaurants=RestaurantTiers(
            all=[
                restaurant("local-favorite", "Local Favorite Restaurant", f"Downtown {primary}", 4.2, 2, "Local cuisine"),
                restaurant("cozy-cafe", "Cozy Cafe", f"City Center, {primary}", 4.0, 1, "Coffee, Breakfast"),
            ],
            fine=[fine],
            casual=[casual],
        ),
        activities=[
            activity("main-attraction", f"{primary} Main Attraction", f"Historic District, {primary}", 4.3,
                     ["tourist_attraction", "museum"]),
            activity("walking-tour", f"{primary} Walking Tour", f"City Center, {primary}", 4.4,
                     ["tourist_attraction", "tour"]),
        ],
    )
