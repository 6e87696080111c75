"""
City geocoding through geopy's GoogleV3 backend, read through the lookup cache.
"""
from typing import Callable, Optional

import structlog
from fastapi.concurrency import run_in_threadpool
from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import GoogleV3

from tripengine.core.cache import TTLCache
from tripengine.core.settings import Settings
from tripengine.schemas import City, GeoPoint, LookupFailure, LookupResult

logger = structlog.get_logger(__name__)


def geocode_cache_key(city_name: str) -> str:
    return f"geocode:{city_name.strip().lower()}"


class Geocoder:
    """Resolve city names to coordinates.

    `geocode` is a blocking callable with geopy's ``geocode(query, exactly_one=True)``
    signature, or None when no provider is configured.
    """

    def __init__(self, geocode: Optional[Callable], cache: TTLCache):
        self._geocode = geocode
        self.cache = cache

    @classmethod
    def from_settings(cls, settings: Settings, cache: TTLCache) -> "Geocoder":
        if not settings.providers_configured:
            return cls(None, cache)

        geolocator = GoogleV3(
            api_key=settings.GOOGLE_PLACES_API_KEY,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
        geocode = RateLimiter(
            geolocator.geocode,
            min_delay_seconds=settings.GEOCODE_MIN_DELAY_SECONDS,
            max_retries=settings.GEOCODE_MAX_RETRIES,
            error_wait_seconds=settings.GEOCODE_ERROR_WAIT_SECONDS,
            swallow_exceptions=False,
        )
        return cls(geocode, cache)

    @property
    def available(self) -> bool:
        return self._geocode is not None

    async def lookup(self, city_name: str) -> LookupResult:
        """Geocode `city_name`, returning a tagged result instead of raising"""
        if not self.available:
            return LookupResult.failed(LookupFailure.PROVIDER_UNAVAILABLE, "No geocoding provider configured")

        return await self.cache.get_or_load(
            geocode_cache_key(city_name),
            lambda: run_in_threadpool(self._geocode_city, city_name),
            should_cache=lambda result: result.ok,
        )

    async def resolve(self, city_name: str) -> Optional[City]:
        """City for `city_name`, or None when it can't be resolved (drop the city)"""
        result = await self.lookup(city_name)
        return result.value

    def _geocode_city(self, city_name: str) -> LookupResult:
        try:
            location = self._geocode(city_name, exactly_one=True)
        except GeopyError as e:
            logger.warning("geocode_failed", city=city_name, error=str(e), error_type=type(e).__name__)
            return LookupResult.failed(LookupFailure.PROVIDER_ERROR, str(e))

        if location is None:
            logger.info("geocode_no_results", city=city_name)
            return LookupResult.failed(LookupFailure.NO_RESULTS)

        try:
            raw = location.raw or {}
            city = City(
                name=city_name,
                coordinates=GeoPoint(lat=location.latitude, lng=location.longitude),
                formatted_address=location.address or "",
                provider_place_id=raw.get("place_id", ""),
            )
        except ValueError as e:
            logger.warning("geocode_malformed_response", city=city_name, error=str(e))
            return LookupResult.failed(LookupFailure.PROVIDER_ERROR, str(e))

        logger.info("geocode_resolved", city=city_name, lat=city.coordinates.lat, lng=city.coordinates.lng)
        return LookupResult.success(city)
