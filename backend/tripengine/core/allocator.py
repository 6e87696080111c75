"""
Day-by-day allocation of catalog restaurants and activities.

A run shuffles the catalog pools once, then walks the days in order drawing
places nobody has used yet. Uniqueness is tracked in a per-run UsageLedger
keyed by place id, name and address. When a pool runs dry the day is topped
up with synthetic placeholders so every day meets its style quota exactly.
"""

import logging
import random
from datetime import date, timedelta
from datetime import time as TimeOfDay
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from tripengine.schemas import (
    ActivitySlot, Catalog, DayAllocation, MealSlot, MealType, Place,
    StyleFlags, SyntheticActivity, SyntheticMeal,
)

# Set up logging
logger = logging.getLogger(__name__)


class StyleProfile(BaseModel):
    """Quota and timing parameters for one travel pace"""
    model_config = ConfigDict(frozen=True)

    name: str
    activity_quota: int
    meal_quota: int
    meal_types: List[MealType]
    activity_duration_hint: str
    start_time_hint: TimeOfDay
    activity_prefix: str
    day_note: str

    @classmethod
    def from_flags(cls, flags: Optional[StyleFlags] = None) -> "StyleProfile":
        """Chillaxed wins over busy, busy over adventurous"""
        flags = flags or StyleFlags()
        if flags.chillaxed:
            return STYLE_PRESETS["chillaxed"]
        if flags.busy:
            return STYLE_PRESETS["busy"]
        if flags.adventurous:
            return STYLE_PRESETS["adventurous"]
        return STYLE_PRESETS["default"]


STYLE_PRESETS: Dict[str, StyleProfile] = {
    "chillaxed": StyleProfile(
        name="chillaxed", activity_quota=2, meal_quota=2,
        meal_types=[MealType.LUNCH, MealType.DINNER],
        activity_duration_hint="3 hours", start_time_hint=TimeOfDay(10, 0),
        activity_prefix="Leisurely visit to",
        day_note="Take your time and enjoy a relaxed pace.",
    ),
    "busy": StyleProfile(
        name="busy", activity_quota=6, meal_quota=3,
        meal_types=[MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER],
        activity_duration_hint="1 hour", start_time_hint=TimeOfDay(9, 0),
        activity_prefix="Visit",
        day_note="Packed day with efficient scheduling.",
    ),
    "adventurous": StyleProfile(
        name="adventurous", activity_quota=4, meal_quota=2,
        meal_types=[MealType.LUNCH, MealType.DINNER],
        activity_duration_hint="2 hours", start_time_hint=TimeOfDay(9, 0),
        activity_prefix="Adventure at",
        day_note="Great day for active exploration!",
    ),
    "default": StyleProfile(
        name="default", activity_quota=3, meal_quota=2,
        meal_types=[MealType.LUNCH, MealType.DINNER],
        activity_duration_hint="2 hours", start_time_hint=TimeOfDay(9, 0),
        activity_prefix="Visit",
        day_note="Enjoy discovering this destination!",
    ),
}

# Slot times after the style's start time, keyed by activities per day
ACTIVITY_SCHEDULE: Dict[int, List[TimeOfDay]] = {
    1: [],
    2: [TimeOfDay(14, 0)],
    3: [TimeOfDay(13, 0), TimeOfDay(16, 0)],
    4: [TimeOfDay(11, 30), TimeOfDay(14, 0), TimeOfDay(16, 30)],
    5: [TimeOfDay(10, 30), TimeOfDay(13, 0), TimeOfDay(15, 0), TimeOfDay(17, 0)],
    6: [TimeOfDay(10, 0), TimeOfDay(12, 0), TimeOfDay(14, 0), TimeOfDay(16, 0), TimeOfDay(18, 0)],
}

SYNTHETIC_ACTIVITIES = {
    "adventurous": [
        "Outdoor exploration in {destination}",
        "Adventure sports in {destination}",
        "Hiking or active exploration",
        "Water sports or climbing",
        "Extreme sports activity",
        "Rock climbing or zip-lining",
    ],
    "chillaxed": [
        "Relaxing stroll through {destination}",
        "Visit peaceful gardens",
        "Spa or wellness activity",
        "Scenic viewpoint visit",
        "Yoga or meditation",
        "Beach or lake relaxation",
    ],
    "default": [
        "Explore {destination} highlights",
        "Cultural site visit",
        "Museum visit",
        "Local market exploration",
        "Art gallery visit",
        "Historical tour",
    ],
}


def activity_times(profile: StyleProfile, count: int) -> List[TimeOfDay]:
    """Deterministic start times for `count` activities"""
    follow_ups = ACTIVITY_SCHEDULE.get(min(count, 6), ACTIVITY_SCHEDULE[3])
    return [profile.start_time_hint, *follow_ups][:count]


def resolve_style(style: Union[StyleProfile, StyleFlags, None]) -> StyleProfile:
    if isinstance(style, StyleProfile):
        return style
    return StyleProfile.from_flags(style)


class UsageLedger:
    """Places already handed out in one allocation run.

    A place counts as used if its id, name or address matches anything
    recorded, so the same venue listed twice under different ids is still
    caught. Synthetic placeholders are never recorded.
    """

    def __init__(self):
        self.ids = set()
        self.names = set()
        self.addresses = set()

    @staticmethod
    def _key(value: Optional[str]) -> str:
        return " ".join((value or "").lower().split())

    @classmethod
    def seeded(cls, days: Iterable[DayAllocation]) -> "UsageLedger":
        ledger = cls()
        for day in days:
            ledger.record_day(day)
        return ledger

    def is_used(self, place: Place) -> bool:
        address = self._key(place.address)
        return (
            self._key(place.id) in self.ids
            or self._key(place.name) in self.names
            or bool(address and address in self.addresses)
        )

    def record(self, place: Place) -> None:
        self.ids.add(self._key(place.id))
        self.names.add(self._key(place.name))
        address = self._key(place.address)
        if address:
            self.addresses.add(address)

    def record_day(self, day: DayAllocation) -> None:
        for place in day.real_places():
            self.record(place)

    def __len__(self):
        return len(self.ids)


def draw_unused(pool: Sequence[Place], ledger: UsageLedger, count: int) -> List[Place]:
    """Take up to `count` places from `pool` in order, skipping used ones.

    Each taken place is recorded immediately so duplicates inside the pool
    itself are skipped too.
    """
    taken = []
    for place in pool:
        if len(taken) >= count:
            break
        if ledger.is_used(place):
            continue
        ledger.record(place)
        taken.append(place)
    return taken


class DayAllocator:
    """One allocation run over a catalog: shared shuffled pools and ledger"""

    def __init__(
        self,
        catalog: Catalog,
        profile: StyleProfile,
        ledger:  Optional[UsageLedger] = None,
        rng:     Optional[random.Random] = None,
    ):
        self.catalog = catalog
        self.profile = profile
        self.ledger = ledger or UsageLedger()
        self.destination = catalog.destination or "your destination"

        rng = rng or random.Random()
        # shuffled once per run, not per day
        self.restaurants = list(catalog.restaurants.all)
        self.activities = list(catalog.activities)
        rng.shuffle(self.restaurants)
        rng.shuffle(self.activities)

    def build_day(self, day_number: int, day_date: date, notes: str) -> DayAllocation:
        profile = self.profile
        day_restaurants = draw_unused(self.restaurants, self.ledger, profile.meal_quota)
        day_activities = draw_unused(self.activities, self.ledger, profile.activity_quota)

        synthesized = (profile.meal_quota - len(day_restaurants)) + (profile.activity_quota - len(day_activities))
        if synthesized:
            logger.info(
                f"Day {day_number}: catalog exhausted, synthesizing {synthesized} placeholder(s) "
                f"for {self.destination}"
            )

        return DayAllocation(
            day_number=day_number,
            date=day_date,
            activities=self._activity_slots(day_activities),
            meals=self._meal_slots(day_restaurants),
            notes=notes,
        )

    def _activity_slots(self, places: List[Place]) -> List[ActivitySlot]:
        profile = self.profile
        slots = []
        for idx, time_slot in enumerate(activity_times(profile, profile.activity_quota)):
            cost = "Medium" if idx % 2 == 0 else "Low"
            if idx < len(places):
                place = places[idx]
                description = f"{profile.activity_prefix} {place.name}"
            else:
                place = self._synthetic_activity(idx)
                description = place.description
            slots.append(ActivitySlot(
                time=time_slot,
                duration=profile.activity_duration_hint,
                description=description,
                cost=cost,
                place=place,
            ))
        return slots

    def _meal_slots(self, places: List[Place]) -> List[MealSlot]:
        slots = []
        for idx, meal_type in enumerate(self.profile.meal_types[:self.profile.meal_quota]):
            if idx < len(places):
                place = places[idx]
                slots.append(MealSlot(meal_type=meal_type, place=place, price_range=place.price_range))
            else:
                slots.append(MealSlot(meal_type=meal_type, place=self._synthetic_meal(meal_type)))
        return slots

    def _synthetic_activity(self, idx: int) -> SyntheticActivity:
        names = SYNTHETIC_ACTIVITIES.get(self.profile.name, SYNTHETIC_ACTIVITIES["default"])
        if idx < len(names):
            name = names[idx].format(destination=self.destination)
        else:
            name = f"Activity {idx + 1} in {self.destination}"
        return SyntheticActivity(
            name=name,
            description=f"Discover {self.destination} at your own pace",
            location=f"{self.destination} city center",
        )

    def _synthetic_meal(self, meal_type: MealType) -> SyntheticMeal:
        return SyntheticMeal(
            name=f"Local {meal_type.value.capitalize()} Spot",
            location=f"{self.destination} downtown",
        )


def trip_day_note(day_number: int, day_count: int, destination: str) -> str:
    if day_number == 1:
        return f"Enjoy your first day in {destination}!"
    if day_number == day_count:
        return f"Enjoy your last day in {destination}!"
    return f"Enjoy your day in {destination}!"


def allocate_days(
    catalog:       Catalog,
    day_count:     int,
    style:         Union[StyleProfile, StyleFlags, None] = None,
    existing_days: Optional[Sequence[DayAllocation]] = None,
    start_date:    Optional[date] = None,
    rng:           Optional[random.Random] = None,
) -> List[DayAllocation]:
    """
    Allocate `day_count` days from `catalog`.

    No real place (by id, name or address) appears on more than one day,
    nor on any day in `existing_days`. Every day meets the style's activity
    and meal quotas exactly, using synthetic entries when the catalog runs out.
    """
    if day_count < 1:
        raise ValueError("day_count must be at least 1")

    profile = resolve_style(style)
    start_date = start_date or date.today()
    allocator = DayAllocator(catalog, profile, UsageLedger.seeded(existing_days or []), rng)

    days = []
    for offset in range(day_count):
        day_number = offset + 1
        days.append(allocator.build_day(
            day_number,
            start_date + timedelta(days=offset),
            trip_day_note(day_number, day_count, allocator.destination),
        ))

    logger.info(
        f"Allocated {day_count} day(s) for {allocator.destination} with '{profile.name}' style; "
        f"{len(allocator.ledger)} unique places used"
    )
    return days


def allocate_single_day(
    catalog:          Catalog,
    target_day_index: int,
    style:            Union[StyleProfile, StyleFlags, None],
    existing_days:    Sequence[DayAllocation],
    day_date:         Optional[date] = None,
    rng:              Optional[random.Random] = None,
) -> DayAllocation:
    """
    Regenerate one day (0-based `target_day_index`) of an existing trip.

    Every real place on the other days is pre-seeded into the ledger, so the
    new day never collides with its siblings. The old version of the target
    day does not block its own places.
    """
    trip_days = len(existing_days)
    if target_day_index < 0 or target_day_index >= trip_days:
        raise ValueError("target_day_index out of range")

    day_number = target_day_index + 1
    siblings = [d for d in existing_days if d.day_number != day_number]

    if day_date is None:
        current = next((d for d in existing_days if d.day_number == day_number), None)
        if current is not None:
            day_date = current.date
        else:
            first = min(existing_days, key=lambda d: d.day_number)
            day_date = first.date + timedelta(days=day_number - first.day_number)

    profile = resolve_style(style)
    allocator = DayAllocator(catalog, profile, UsageLedger.seeded(siblings), rng)
    return allocator.build_day(
        day_number,
        day_date,
        f"Day {day_number} in {allocator.destination}. {profile.day_note}",
    )
