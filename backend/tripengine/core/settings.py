from pathlib import Path
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Provider credentials
    GOOGLE_PLACES_API_KEY: str = ""
    PROVIDER_TIMEOUT_SECONDS: int = 10

    # Geocoder rate limiting (geopy RateLimiter)
    GEOCODE_MIN_DELAY_SECONDS: float = 0.0
    GEOCODE_MAX_RETRIES: int = 2
    GEOCODE_ERROR_WAIT_SECONDS: float = 2.0

    # Lookup cache
    CACHE_TTL_SECONDS: int = 3600  # 1 hour, shared by geocodes and place searches
    CACHE_COORD_PRECISION: int = 4  # decimal places kept in cache keys (~11m)

    # Destination resolution
    MAX_CITIES: int = 5  # bounds provider cost per query
    DEFAULT_RADIUS_MILES: float = 15.0
    RESTAURANT_RESULT_LIMIT: int = 10
    ACTIVITY_RESULT_LIMIT: int = 15

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    @field_validator('GOOGLE_PLACES_API_KEY', mode='before')
    @classmethod
    def strip_api_key(cls, v):
        """Treat whitespace-only keys as unset"""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @field_validator('MAX_CITIES', 'RESTAURANT_RESULT_LIMIT', 'ACTIVITY_RESULT_LIMIT', 'CACHE_TTL_SECONDS')
    @classmethod
    def must_be_positive(cls, v):
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @property
    def providers_configured(self) -> bool:
        return bool(self.GOOGLE_PLACES_API_KEY)

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parents[3] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )
