"""Restaurant suggestions for the meal planner, filtered by budget tier."""

import random
from typing import List, Optional, Sequence

from tripengine.core.allocator import UsageLedger, draw_unused
from tripengine.schemas import Catalog, DayAllocation, Place

BUDGET_TIERS = {
    "low": "casual",
    "budget": "casual",
    "high": "fine",
    "luxury": "fine",
}


def restaurants_for_budget(catalog: Catalog, budget: Optional[str]) -> List[Place]:
    """Restaurant tier matching `budget`, falling back to all restaurants when that tier is empty"""
    tier = BUDGET_TIERS.get((budget or "").strip().lower(), "all")
    pool = getattr(catalog.restaurants, tier)
    return list(pool or catalog.restaurants.all)


def suggest_restaurants(
    catalog:       Catalog,
    budget:        Optional[str] = "medium",
    count:         int = 3,
    existing_days: Optional[Sequence[DayAllocation]] = None,
    rng:           Optional[random.Random] = None,
) -> List[Place]:
    """Up to `count` restaurants in the budget's tier not already used in `existing_days`"""
    if count < 1:
        return []

    pool = restaurants_for_budget(catalog, budget)
    (rng or random.Random()).shuffle(pool)
    return draw_unused(pool, UsageLedger.seeded(existing_days or []), count)
