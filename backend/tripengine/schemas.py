from datetime import date
from datetime import time as TimeOfDay
from enum import Enum
from typing import Generic, List, Optional, TypeVar, Union, FrozenSet

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")

PRICE_RANGES = {1: "$", 2: "$$", 3: "$$$", 4: "$$$$"}


def price_range(price_level: Optional[int]) -> str:
    """Map a provider price level to a dollar-sign range, "$$" when unknown"""
    return PRICE_RANGES.get(price_level, "$$")


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)

# ===== LOCATION SCHEMAS =====

class GeoPoint(FrozenModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

class City(FrozenModel):
    name: str
    coordinates: GeoPoint
    formatted_address: str = ""
    provider_place_id: str = ""

class DestinationQuery(FrozenModel):
    raw: str
    full: str
    cities: List[str] = Field(default_factory=list)
    primary: str

    @property
    def multi_city(self) -> bool:
        return len(self.cities) > 1

# ===== PLACE SCHEMAS =====

class PlaceCategory(str, Enum):
    RESTAURANT = "restaurant"
    ACTIVITY = "activity"

class Place(FrozenModel):
    provider_place_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    category: PlaceCategory
    address: str = ""
    coordinates: Optional[GeoPoint] = None
    rating: Optional[float] = None
    price_level: Optional[int] = Field(None, ge=1, le=4)
    tags: FrozenSet[str] = frozenset()
    distance_from_center: Optional[float] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Place name cannot be blank")
        return v

    @property
    def id(self) -> str:
        return self.provider_place_id or self.name

    @property
    def price_range(self) -> str:
        return price_range(self.price_level)

    @property
    def is_synthetic(self) -> bool:
        return False

class RestaurantTiers(FrozenModel):
    all: List[Place] = Field(default_factory=list)
    fine: List[Place] = Field(default_factory=list)
    casual: List[Place] = Field(default_factory=list)

class Catalog(FrozenModel):
    destination: str
    restaurants: RestaurantTiers = Field(default_factory=RestaurantTiers)
    activities: List[Place] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.restaurants.all and not self.activities

# ===== PROVIDER LOOKUP RESULTS =====

class LookupFailure(str, Enum):
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_ERROR = "provider_error"
    NO_RESULTS = "no_results"

class LookupResult(BaseModel, Generic[T]):
    """Outcome of one provider lookup: a value, or the reason there is none"""
    model_config = ConfigDict(frozen=True)

    value: Optional[T] = None
    failure: Optional[LookupFailure] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value):
        return cls(value=value)

    @classmethod
    def failed(cls, failure: LookupFailure, detail: Optional[str] = None):
        return cls(failure=failure, detail=detail)

class CityResult(FrozenModel):
    city: City
    restaurants: RestaurantTiers
    activities: List[Place] = Field(default_factory=list)
    radius_miles: float

    @property
    def restaurant_count(self) -> int:
        return len(self.restaurants.all)

    @property
    def activity_count(self) -> int:
        return len(self.activities)

class LocationSummary(FrozenModel):
    total_restaurants: int = 0
    total_activities: int = 0
    cities_covered: List[str] = Field(default_factory=list)

class LocationData(FrozenModel):
    has_real_data: bool
    city_info: DestinationQuery
    catalog: Catalog
    city_results: List[CityResult] = Field(default_factory=list)
    radius_miles: float
    summary: LocationSummary = Field(default_factory=LocationSummary)
    message: Optional[str] = None

    @property
    def radius_meters(self) -> float:
        return self.radius_miles * 1609.34

    @property
    def restaurants(self) -> RestaurantTiers:
        return self.catalog.restaurants

    @property
    def activities(self) -> List[Place]:
        return self.catalog.activities

    @property
    def multi_city(self) -> bool:
        return self.city_info.multi_city

# ===== ALLOCATION SCHEMAS =====

class StyleFlags(FrozenModel):
    chillaxed: bool = False
    adventurous: bool = False
    busy: bool = False

class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"

class SyntheticActivity(FrozenModel):
    name: str
    description: str
    location: str

    @property
    def is_synthetic(self) -> bool:
        return True

class SyntheticMeal(FrozenModel):
    name: str
    cuisine: str = "Local cuisine"
    location: str
    price_range: str = "$$"

    @property
    def is_synthetic(self) -> bool:
        return True

class ActivitySlot(FrozenModel):
    time: TimeOfDay
    duration: str
    description: str
    cost: str
    place: Union[Place, SyntheticActivity]

    @property
    def location(self) -> str:
        if isinstance(self.place, Place):
            return self.place.address
        return self.place.location

class MealSlot(FrozenModel):
    meal_type: MealType
    place: Union[Place, SyntheticMeal]
    price_range: str = "$$"

class DayAllocation(FrozenModel):
    day_number: int = Field(..., ge=1)
    date: date
    activities: List[ActivitySlot] = Field(default_factory=list)
    meals: List[MealSlot] = Field(default_factory=list)
    notes: str = ""

    def real_places(self) -> List[Place]:
        """Catalog places used on this day, synthetic placeholders excluded"""
        slots = [*self.activities, *self.meals]
        return [s.place for s in slots if isinstance(s.place, Place)]
