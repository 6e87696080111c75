"""
Tests for the day allocator: quotas, cross-day uniqueness and synthesis
"""

import random
from datetime import date, time, timedelta

import pytest

from tripengine.core.allocator import (
    STYLE_PRESETS, StyleProfile, UsageLedger, activity_times,
    allocate_days, allocate_single_day, draw_unused,
)
from tripengine.schemas import (
    Catalog, MealType, Place, PlaceCategory, RestaurantTiers, StyleFlags,
    SyntheticActivity, SyntheticMeal,
)

from conftest import make_catalog, make_place

START = date(2024, 6, 1)


def identities(day):
    keys = set()
    for place in day.real_places():
        keys |= {("id", place.id), ("name", place.name.lower()), ("address", place.address.lower())}
    return keys


def assert_pairwise_disjoint(days):
    for i, a in enumerate(days):
        for b in days[i + 1:]:
            assert not identities(a) & identities(b), f"day {a.day_number} and day {b.day_number} share a place"


class TestStyleProfile:

    @pytest.mark.parametrize("flags,expected", [
        (StyleFlags(), "default"),
        (StyleFlags(adventurous=True), "adventurous"),
        (StyleFlags(busy=True), "busy"),
        (StyleFlags(busy=True, adventurous=True), "busy"),
        (StyleFlags(chillaxed=True, busy=True), "chillaxed"),
        (StyleFlags(chillaxed=True, adventurous=True, busy=True), "chillaxed"),
    ])
    def test_flag_precedence(self, flags, expected):
        assert StyleProfile.from_flags(flags).name == expected

    def test_none_is_default(self):
        assert StyleProfile.from_flags(None) is STYLE_PRESETS["default"]

    def test_busy_has_three_meals(self):
        busy = STYLE_PRESETS["busy"]
        assert busy.meal_quota == 3
        assert busy.meal_types == [MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER]


class TestActivityTimes:

    @pytest.mark.parametrize("style,expected", [
        ("chillaxed", [time(10, 0), time(14, 0)]),
        ("default", [time(9, 0), time(13, 0), time(16, 0)]),
        ("adventurous", [time(9, 0), time(11, 30), time(14, 0), time(16, 30)]),
        ("busy", [time(9, 0), time(10, 0), time(12, 0), time(14, 0), time(16, 0), time(18, 0)]),
    ])
    def test_schedule_per_style(self, style, expected):
        profile = STYLE_PRESETS[style]
        assert activity_times(profile, profile.activity_quota) == expected

    def test_times_are_strictly_increasing(self):
        for profile in STYLE_PRESETS.values():
            times = activity_times(profile, profile.activity_quota)
            assert times == sorted(set(times))


class TestUsageLedger:

    def test_matches_on_any_identity_key(self):
        ledger = UsageLedger()
        ledger.record(make_place(1))

        assert ledger.is_used(make_place(1))
        # same name, different id and address
        assert ledger.is_used(make_place(2, name="Restaurant 1"))
        # same address, different id and name
        assert ledger.is_used(make_place(3, address="1 Main Street"))
        assert not ledger.is_used(make_place(4))

    def test_keys_are_normalized(self):
        ledger = UsageLedger()
        ledger.record(make_place(1, name="Blue  Star Donuts"))
        assert ledger.is_used(make_place(2, name="blue star donuts"))

    def test_empty_address_never_collides(self):
        ledger = UsageLedger()
        ledger.record(make_place(1, address=""))
        assert not ledger.is_used(make_place(2, address=""))

    def test_draw_unused_skips_duplicates_within_pool(self):
        pool = [make_place(1), make_place(1), make_place(2)]
        taken = draw_unused(pool, UsageLedger(), 3)
        assert [p.id for p in taken] == ["r-1", "r-2"]


class TestAllocateDays:

    @pytest.mark.parametrize("style", ["chillaxed", "default", "adventurous", "busy"])
    def test_quota_met_exactly_every_day(self, style, rng):
        profile = STYLE_PRESETS[style]
        days = allocate_days(make_catalog(4, 5), 5, profile, start_date=START, rng=rng)

        assert len(days) == 5
        for day in days:
            assert len(day.activities) == profile.activity_quota
            assert len(day.meals) == profile.meal_quota
            assert [m.meal_type for m in day.meals] == profile.meal_types

    def test_days_are_numbered_and_dated(self, rng):
        days = allocate_days(make_catalog(), 3, start_date=START, rng=rng)
        assert [d.day_number for d in days] == [1, 2, 3]
        assert [d.date for d in days] == [START + timedelta(days=i) for i in range(3)]
        assert days[0].notes == "Enjoy your first day in Springfield!"
        assert days[1].notes == "Enjoy your day in Springfield!"
        assert days[2].notes == "Enjoy your last day in Springfield!"

    def test_real_places_never_repeat_across_days(self, rng):
        days = allocate_days(make_catalog(12, 20), 7, StyleFlags(busy=True), start_date=START, rng=rng)
        assert_pairwise_disjoint(days)

    def test_same_venue_under_different_ids_used_once(self, rng):
        twin = make_place(99, name="Restaurant 0")
        catalog = Catalog(
            destination="Springfield",
            restaurants=RestaurantTiers(all=[make_place(0), twin, make_place(1)]),
        )
        days = allocate_days(catalog, 3, start_date=START, rng=rng)

        used_names = [p.name for d in days for p in d.real_places()]
        assert used_names.count("Restaurant 0") == 1
        assert_pairwise_disjoint(days)

    def test_same_address_under_different_names_used_once(self, rng):
        catalog = Catalog(
            destination="Springfield",
            activities=[
                make_place(1, PlaceCategory.ACTIVITY, address="1 Food Cart Pod"),
                make_place(2, PlaceCategory.ACTIVITY, address="1 Food Cart Pod"),
            ],
        )
        days = allocate_days(catalog, 2, start_date=START, rng=rng)
        assert sum(len(d.real_places()) for d in days) == 1

    def test_pool_exhaustion_scenario(self, rng):
        """Two restaurants across two three-meal days"""
        catalog = make_catalog(n_restaurants=2, n_activities=0)
        day1, day2 = allocate_days(catalog, 2, StyleFlags(busy=True), start_date=START, rng=rng)

        day1_real = [m.place for m in day1.meals if isinstance(m.place, Place)]
        day2_real = [m.place for m in day2.meals if isinstance(m.place, Place)]
        assert len(day1_real) == 2
        assert day2_real == []
        assert len(day1.meals) == len(day2.meals) == 3

        synthetic = [m.place for m in day1.meals + day2.meals if isinstance(m.place, SyntheticMeal)]
        assert len(synthetic) == 4
        assert day1.meals[2].place.name == "Local Dinner Spot"
        assert day2.meals[0].place.name == "Local Breakfast Spot"

    def test_synthetic_activities_keyed_by_style(self, rng):
        catalog = make_catalog(0, 0, destination="Bend")
        day = allocate_days(catalog, 1, StyleFlags(adventurous=True), start_date=START, rng=rng)[0]

        assert all(isinstance(s.place, SyntheticActivity) for s in day.activities)
        assert day.activities[0].place.name == "Outdoor exploration in Bend"
        assert day.activities[0].location == "Bend city center"
        assert day.activities[0].description == "Discover Bend at your own pace"

    def test_synthetic_names_may_repeat_across_days(self, rng):
        catalog = make_catalog(0, 0)
        days = allocate_days(catalog, 3, start_date=START, rng=rng)
        names = {d.meals[0].place.name for d in days}
        assert names == {"Local Lunch Spot"}

    def test_activity_slots_describe_real_places(self, rng):
        days = allocate_days(make_catalog(), 1, StyleFlags(chillaxed=True), start_date=START, rng=rng)
        slot = days[0].activities[0]
        assert slot.description == f"Leisurely visit to {slot.place.name}"
        assert slot.duration == "3 hours"
        assert [s.cost for s in days[0].activities] == ["Medium", "Low"]

    def test_meal_price_range_from_place(self, rng):
        catalog = Catalog(
            destination="Springfield",
            restaurants=RestaurantTiers(all=[make_place(1, price_level=4), make_place(2, price_level=4)]),
        )
        day = allocate_days(catalog, 1, start_date=START, rng=rng)[0]
        assert [m.price_range for m in day.meals] == ["$$$$", "$$$$"]

    def test_existing_days_are_excluded(self, rng):
        catalog = make_catalog(6, 9)
        first = allocate_days(catalog, 2, start_date=START, rng=rng)
        more = allocate_days(catalog, 1, existing_days=first, start_date=START, rng=rng)
        assert_pairwise_disjoint(first + more)

    def test_seeded_run_is_reproducible(self):
        catalog = make_catalog(8, 12)
        a = allocate_days(catalog, 3, start_date=START, rng=random.Random(7))
        b = allocate_days(catalog, 3, start_date=START, rng=random.Random(7))
        assert a == b

    def test_rejects_non_positive_day_count(self):
        with pytest.raises(ValueError):
            allocate_days(make_catalog(), 0)


class TestAllocateSingleDay:

    def test_regenerated_day_avoids_siblings(self, rng):
        catalog = make_catalog(15, 15)
        trip = allocate_days(catalog, 5, start_date=START, rng=rng)

        new_day = allocate_single_day(catalog, 2, None, trip, rng=random.Random(99))

        assert new_day.day_number == 3
        assert new_day.date == trip[2].date
        siblings = [d for d in trip if d.day_number != 3]
        assert_pairwise_disjoint(siblings + [new_day])
        assert new_day.notes == "Day 3 in Springfield. Enjoy discovering this destination!"

    def test_target_day_may_reuse_its_own_places(self, rng):
        # exactly enough places for the trip, so day 2 can only get its old places back
        catalog = make_catalog(4, 6)
        trip = allocate_days(catalog, 2, start_date=START, rng=rng)

        new_day = allocate_single_day(catalog, 1, None, trip, rng=rng)
        assert {p.id for p in new_day.real_places()} == {p.id for p in trip[1].real_places()}

    def test_falls_back_to_synthetic_when_siblings_used_everything(self, rng):
        catalog = make_catalog(2, 3)
        trip = allocate_days(catalog, 2, start_date=START, rng=rng)
        new_day = allocate_single_day(catalog, 1, None, trip, rng=rng)

        assert new_day.real_places() == []
        assert len(new_day.activities) == 3
        assert len(new_day.meals) == 2

    def test_explicit_date_and_style(self, rng):
        catalog = make_catalog()
        trip = allocate_days(catalog, 2, start_date=START, rng=rng)
        new_day = allocate_single_day(
            catalog, 0, StyleFlags(busy=True), trip, day_date=date(2024, 7, 4), rng=rng,
        )
        assert new_day.date == date(2024, 7, 4)
        assert len(new_day.activities) == 6
        assert len(new_day.meals) == 3

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_rejects_out_of_range_index(self, index, rng):
        trip = allocate_days(make_catalog(), 3, start_date=START, rng=rng)
        with pytest.raises(ValueError):
            allocate_single_day(make_catalog(), index, None, trip)
