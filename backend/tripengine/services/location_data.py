"""
Destination content resolution: free-text destination -> trip-wide catalog.
"""
import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog

from tripengine.core.cache import TTLCache
from tripengine.core.geo import miles_to_meters
from tripengine.core.nlp.destination_parser import parse_destination
from tripengine.core.settings import Settings
from tripengine.schemas import (
    City, CityResult, DestinationQuery, LocationData, LocationSummary, RestaurantTiers,
)
from tripengine.services.aggregator import aggregate, synthetic_catalog
from tripengine.services.geocoder import Geocoder
from tripengine.services.places import PlaceFinder

logger = structlog.get_logger(__name__)

FINE_PRICE_LEVEL = 3
CASUAL_PRICE_LEVEL = 1

NO_PROVIDER_MESSAGE = "Add a Google Places API key for real restaurant and activity suggestions."
NO_CITIES_MESSAGE = "Could not geocode any cities from destination"
PROVIDER_FAILED_MESSAGE = "Location providers are unavailable right now; showing placeholder suggestions."


@asynccontextmanager
async def performance_timer(operation: str):
    """Context manager for timing operations"""
    start = time.time()
    try:
        yield
    finally:
        duration = time.time() - start
        logger.info("operation_timed", operation=operation, duration_ms=round(duration * 1000, 2))


class LocationDataService:
    """Resolves destinations into catalogs of nearby restaurants and activities"""

    def __init__(self, geocoder: Geocoder, place_finder: PlaceFinder, settings: Optional[Settings] = None):
        self.geocoder = geocoder
        self.place_finder = place_finder
        self.settings = settings or Settings()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, cache: Optional[TTLCache] = None):
        settings = settings or Settings()
        cache = cache or TTLCache(ttl_seconds=settings.CACHE_TTL_SECONDS)
        return cls(
            Geocoder.from_settings(settings, cache),
            PlaceFinder.from_settings(settings, cache),
            settings,
        )

    @property
    def providers_available(self) -> bool:
        return self.geocoder.available and self.place_finder.available

    async def resolve_location_data(self, destination: str, radius_miles: Optional[float] = None) -> LocationData:
        """
        Build the catalog for `destination`.

        Missing credentials, unresolvable cities and provider failures all
        degrade to a synthetic catalog with has_real_data=False. Only a
        non-positive `radius_miles` raises ValueError.
        """
        if radius_miles is None:
            radius_miles = self.settings.DEFAULT_RADIUS_MILES
        elif radius_miles <= 0:
            raise ValueError("radius_miles must be positive")
        query = parse_destination(destination, max_cities=self.settings.MAX_CITIES)
        log = logger.bind(destination=destination, cities=query.cities, radius_miles=radius_miles)

        if not self.providers_available:
            log.info("location_data_mocked", reason="providers_not_configured")
            return self.synthetic_location_data(query, radius_miles, NO_PROVIDER_MESSAGE)

        try:
            async with performance_timer("resolve_location_data"):
                return await self._resolve(query, radius_miles, log)
        except Exception:
            log.exception("location_data_failed")
            return self.synthetic_location_data(query, radius_miles, PROVIDER_FAILED_MESSAGE)

    async def _resolve(self, query: DestinationQuery, radius_miles: float, log) -> LocationData:
        radius_meters = miles_to_meters(radius_miles)

        # one slow city must not hold up the others
        resolved = await asyncio.gather(*(
            self.resolve_city(name, radius_miles, radius_meters) for name in query.cities
        ))
        city_results = [r for r in resolved if r is not None]

        aggregation = aggregate(city_results, query.primary)
        if not aggregation.has_real_data:
            log.warning("location_data_no_cities")
            return self.synthetic_location_data(query, radius_miles, NO_CITIES_MESSAGE)

        catalog = aggregation.catalog
        summary = LocationSummary(
            total_restaurants=len(catalog.restaurants.all),
            total_activities=len(catalog.activities),
            cities_covered=[r.city.name for r in city_results],
        )
        log.info(
            "location_data_resolved",
            cities_covered=summary.cities_covered,
            restaurants=summary.total_restaurants,
            activities=summary.total_activities,
        )
        return LocationData(
            has_real_data=True,
            city_info=query,
            catalog=catalog,
            city_results=city_results,
            radius_miles=radius_miles,
            summary=summary,
        )

    async def resolve_city(self, city_name: str, radius_miles: float, radius_meters: float) -> Optional[CityResult]:
        """Geocode one city and run its four searches concurrently; None drops the city.

        A failure inside one city drops only that city.
        """
        try:
            city: Optional[City] = await self.geocoder.resolve(city_name)
            if city is None:
                logger.info("city_dropped", city=city_name)
                return None

            coords = city.coordinates
            finder = self.place_finder
            restaurants, activities, fine, casual = await asyncio.gather(
                finder.find_restaurants(coords, radius_meters),
                finder.find_activities(coords, radius_meters),
                finder.find_restaurants(coords, radius_meters, price_level=FINE_PRICE_LEVEL),
                finder.find_restaurants(coords, radius_meters, price_level=CASUAL_PRICE_LEVEL),
            )
        except Exception:
            logger.exception("city_failed", city=city_name)
            return None

        return CityResult(
            city=city,
            restaurants=RestaurantTiers(all=restaurants, fine=fine, casual=casual),
            activities=activities,
            radius_miles=radius_miles,
        )

    def synthetic_location_data(self, query: DestinationQuery, radius_miles: float, message: str) -> LocationData:
        catalog = synthetic_catalog(query)
        return LocationData(
            has_real_data=False,
            city_info=query,
            catalog=catalog,
            radius_miles=radius_miles,
            summary=LocationSummary(
                total_restaurants=len(catalog.restaurants.all),
                total_activities=len(catalog.activities),
            ),
            message=message,
        )
