"""
Destination parser: splits a free-text destination into the cities to look up
"""

import re
import logging
from typing import List

from tripengine.schemas import DestinationQuery

# Configure logging
logger = logging.getLogger(__name__)

MAX_CITIES = 5

# Travel phrasing that never names a place
TRAVEL_PHRASES = re.compile(
    r'\b(trip to|visit|vacation in|tour of|traveling to|flight to|drive to|trip|visiting)\b',
    re.IGNORECASE,
)
PUNCTUATION = re.compile(r'[^\w\s,-]')
SEPARATORS = re.compile(r'\b(?:and|then|to|via|through)\b', re.IGNORECASE)

# "Oregon Portland" -> "Portland"
LEADING_STATE = re.compile(
    r'^(Oregon|Washington|California|Texas|New York|Florida|Nevada|Utah|Colorado|Arizona)\s+',
    re.IGNORECASE,
)

# Bare region names with a hardcoded default city. Intentionally narrow:
# this is a lookup table, not a rule to extend to other regions.
REGION_DEFAULTS = {
    "oregon": "Portland, Oregon",
}
REGION_KEYWORD_DEFAULTS = {
    "oregon": [("coast", "Newport, Oregon")],
}


def clean_destination(text: str) -> str:
    """Remove travel phrasing and stray punctuation"""
    cleaned = TRAVEL_PHRASES.sub('', text or '')
    cleaned = PUNCTUATION.sub('', cleaned)
    return re.sub(r'\s+', ' ', cleaned).strip()


def strip_leading_state(fragment: str) -> str:
    """Drop a leading state name unless it would leave nothing usable"""
    stripped = LEADING_STATE.sub('', fragment).strip()
    return stripped if len(stripped) > 2 else fragment


def split_on_separators(cleaned: str) -> List[str]:
    """Split on conjunctions/transitions and keep plausible city fragments"""
    parts = [p.strip(' ,-') for p in SEPARATORS.split(cleaned)]
    return [p for p in parts if len(p) > 2]


def split_on_commas(cleaned: str) -> List[str]:
    """Comma fallback; "City, Country" stays a single destination"""
    parts = [p.strip() for p in cleaned.split(',') if len(p.strip()) > 2]
    if len(parts) > 1:
        return [cleaned]
    return parts


def apply_region_defaults(candidates: List[str]) -> List[str]:
    if len(candidates) != 1:
        return candidates

    lowered = candidates[0].lower()
    if lowered in REGION_DEFAULTS:
        return [REGION_DEFAULTS[lowered]]

    for region, keywords in REGION_KEYWORD_DEFAULTS.items():
        if region not in lowered:
            continue
        for keyword, city in keywords:
            if keyword in lowered:
                return [city]
    return candidates


def dedupe_cities(candidates: List[str], limit: int = MAX_CITIES) -> List[str]:
    """Case-insensitive dedup keeping first spelling, capped at `limit`"""
    seen = set()
    cities = []
    for city in candidates:
        key = city.lower()
        if len(city) <= 2 or key in seen:
            continue
        seen.add(key)
        cities.append(city)
    return cities[:limit]


def parse_destination(text: str, max_cities: int = MAX_CITIES) -> DestinationQuery:
    """
    Parse a destination string such as "Paris, France", "New York to Los Angeles"
    or "trip to Tokyo and Kyoto" into an ordered list of cities.

    Pure and deterministic; never touches the network.
    """
    cleaned = clean_destination(text)

    fragments = split_on_separators(cleaned)
    if len(fragments) > 1:
        candidates = [strip_leading_state(f) for f in fragments]
    else:
        # a lone fragment may still be "City, Country"
        candidates = split_on_commas(fragments[0] if fragments else cleaned)

    candidates = apply_region_defaults(candidates)
    cities = dedupe_cities(candidates, limit=max_cities)

    query = DestinationQuery(
        raw=text or "",
        full=cleaned,
        cities=cities,
        primary=cities[0] if cities else cleaned,
    )
    logger.debug(f"Parsed destination {text!r} into cities {cities}")
    return query
