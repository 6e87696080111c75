"""
Category-scoped place search (restaurants, activities) via the Google Places
text search, read through the lookup cache and re-filtered by true distance.
"""
from typing import Any, Dict, List, Optional

import googlemaps
import structlog
from fastapi.concurrency import run_in_threadpool
from googlemaps.exceptions import ApiError, Timeout, TransportError

from tripengine.core.cache import TTLCache
from tripengine.core.geo import filter_by_distance, meters_to_miles
from tripengine.core.settings import Settings
from tripengine.schemas import GeoPoint, LookupFailure, LookupResult, Place, PlaceCategory

logger = structlog.get_logger(__name__)

GENERIC_TYPES = {
    PlaceCategory.RESTAURANT: {"establishment", "point_of_interest", "food", "restaurant"},
    PlaceCategory.ACTIVITY: {"establishment", "point_of_interest"},
}
DEFAULT_ACTIVITY_QUERY = "tourist attraction things to do"


def place_from_record(record: Dict[str, Any], category: PlaceCategory) -> Optional[Place]:
    """Build a Place from a raw text-search record; None if it has no usable name"""
    name = (record.get("name") or "").strip()
    if not name:
        return None

    location = (record.get("geometry") or {}).get("location") or {}
    coordinates = None
    if location.get("lat") is not None and location.get("lng") is not None:
        coordinates = GeoPoint(lat=location["lat"], lng=location["lng"])

    price_level = record.get("price_level")
    # price level 0 means free; only 1..4 are meaningful tiers
    if price_level not in (1, 2, 3, 4):
        price_level = None

    return Place(
        provider_place_id=record.get("place_id") or None,
        name=name,
        category=category,
        address=record.get("formatted_address") or "",
        coordinates=coordinates,
        rating=record.get("rating"),
        price_level=price_level,
        tags=frozenset(t for t in (record.get("types") or []) if t not in GENERIC_TYPES[category]),
    )


class PlaceFinder:
    def __init__(
        self,
        client:          Optional[googlemaps.Client],
        cache:           TTLCache,
        restaurant_limit: int = 10,
        activity_limit:  int = 15,
        coord_precision: int = 4,
    ):
        self.client = client
        self.cache = cache
        self.restaurant_limit = restaurant_limit
        self.activity_limit = activity_limit
        self.coord_precision = coord_precision

    @classmethod
    def from_settings(cls, settings: Settings, cache: TTLCache) -> "PlaceFinder":
        client = None
        if settings.providers_configured:
            try:
                client = googlemaps.Client(
                    key=settings.GOOGLE_PLACES_API_KEY,
                    timeout=settings.PROVIDER_TIMEOUT_SECONDS,
                )
            except ValueError as e:
                # googlemaps rejects malformed keys up front
                logger.error("place_client_init_failed", error=str(e))
        return cls(
            client,
            cache,
            restaurant_limit=settings.RESTAURANT_RESULT_LIMIT,
            activity_limit=settings.ACTIVITY_RESULT_LIMIT,
            coord_precision=settings.CACHE_COORD_PRECISION,
        )

    @property
    def available(self) -> bool:
        return self.client is not None

    def cache_key(self, kind: str, coords: GeoPoint, radius_meters: float, *filters) -> str:
        p = self.coord_precision
        parts = [kind, f"{coords.lat:.{p}f}", f"{coords.lng:.{p}f}", f"{radius_meters:.0f}"]
        parts.extend("" if f is None else str(f).strip().lower() for f in filters)
        return ":".join(parts)

    async def search_restaurants(
        self,
        coords:        GeoPoint,
        radius_meters: float,
        cuisine:       str = "",
        price_level:   Optional[int] = None,
    ) -> LookupResult:
        query = f"restaurant {cuisine}".strip()
        search = dict(query=query, type="restaurant")
        if price_level is not None:
            search.update(min_price=price_level, max_price=price_level)

        return await self._cached_search(
            self.cache_key("restaurants", coords, radius_meters, cuisine, price_level),
            coords, radius_meters, search, PlaceCategory.RESTAURANT, self.restaurant_limit,
        )

    async def search_activities(
        self,
        coords:        GeoPoint,
        radius_meters: float,
        activity_type: str = "",
    ) -> LookupResult:
        search = dict(query=activity_type.strip() or DEFAULT_ACTIVITY_QUERY, type="tourist_attraction")
        return await self._cached_search(
            self.cache_key("activities", coords, radius_meters, activity_type),
            coords, radius_meters, search, PlaceCategory.ACTIVITY, self.activity_limit,
        )

    async def find_restaurants(self, coords, radius_meters, cuisine="", price_level=None) -> List[Place]:
        result = await self.search_restaurants(coords, radius_meters, cuisine, price_level)
        # copy so callers can reorder without touching the cached entry
        return list(result.value or [])

    async def find_activities(self, coords, radius_meters, activity_type="") -> List[Place]:
        result = await self.search_activities(coords, radius_meters, activity_type)
        return list(result.value or [])

    async def _cached_search(self, key, coords, radius_meters, search, category, limit) -> LookupResult:
        if not self.available:
            return LookupResult.failed(LookupFailure.PROVIDER_UNAVAILABLE, "No place search provider configured")

        return await self.cache.get_or_load(
            key,
            lambda: run_in_threadpool(self._text_search, coords, radius_meters, search, category, limit),
            # zero results is a real answer; provider errors are retried next time
            should_cache=lambda result: result.failure != LookupFailure.PROVIDER_ERROR,
        )

    def _text_search(self, coords, radius_meters, search, category, limit) -> LookupResult:
        try:
            response = self.client.places(
                location=(coords.lat, coords.lng),
                radius=int(radius_meters),
                **search,
            )
        except (ApiError, TransportError, Timeout) as e:
            logger.warning(
                "place_search_failed",
                category=category.value,
                query=search["query"],
                error=str(e),
                error_type=type(e).__name__,
            )
            return LookupResult.failed(LookupFailure.PROVIDER_ERROR, str(e))

        places = []
        for record in response.get("results", []):
            try:
                place = place_from_record(record, category)
            except ValueError as e:
                logger.info("place_record_skipped", place_id=record.get("place_id"), error=str(e))
                continue
            if place is not None:
                places.append(place)

        # truncate only after the distance check so proximity, not provider rank, decides
        nearby = filter_by_distance(places, coords, meters_to_miles(radius_meters))[:limit]

        logger.info(
            "place_search_completed",
            category=category.value,
            query=search["query"],
            returned=len(places),
            within_radius=len(nearby),
        )
        if not nearby:
            return LookupResult.failed(LookupFailure.NO_RESULTS)
        return LookupResult.success(nearby)
