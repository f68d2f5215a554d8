"""Preference ranking, explicit sorts, and pagination.

With no explicit sort, events are ordered by a weighted preference score
(descending). Python's sort is stable, so ties keep the deduplicated order,
which is provider priority order.
"""

import math
from typing import Callable, Dict, List, Optional

from .date_utils import parse_display_hour, time_of_day
from .models import Event, UserPreferences
from .pricing import price_value

FAVORITE_WEIGHT = 10.0
PRICE_WEIGHT = 5.0
TIME_WEIGHT = 3.0

LOW_PRICE_MAX = 25.0
MEDIUM_PRICE_MAX = 75.0


def price_band(value: Optional[float]) -> Optional[str]:
    """free / low / medium / high for a numeric price, None if unknown."""
    if value is None:
        return None
    if value <= 0:
        return "free"
    if value <= LOW_PRICE_MAX:
        return "low"
    if value <= MEDIUM_PRICE_MAX:
        return "medium"
    return "high"


def score_event(event: Event, prefs: Optional[UserPreferences]) -> float:
    score = math.log((event.attendees or 0) + 1)
    if prefs is None:
        return score

    favorites = {c.lower() for c in prefs.favorite_categories}
    if event.category.lower() in favorites:
        score += FAVORITE_WEIGHT

    if prefs.price_preference != "any":
        if price_band(price_value(event.price)) == prefs.price_preference:
            score += PRICE_WEIGHT

    if prefs.time_preference != "any":
        if time_of_day(parse_display_hour(event.time)) == prefs.time_preference:
            score += TIME_WEIGHT

    return score


# Sort keys are total: every event yields a comparable tuple, never raises.
def _by_date(event: Event):
    return event.sort_key


def _by_popularity(event: Event):
    return -(event.attendees or 0)


def _by_price(event: Event):
    value = price_value(event.price)
    return (value is None, value or 0.0)


def _by_distance(event: Event):
    # Unknown distances sort last.
    return (event.distance is None, event.distance or 0.0)


SORTS: Dict[str, Callable[[Event], object]] = {
    "date": _by_date,
    "popularity": _by_popularity,
    "price": _by_price,
    "distance": _by_distance,
}


def rank_events(events: List[Event], sort: Optional[str] = None,
                prefs: Optional[UserPreferences] = None) -> List[Event]:
    """Order events by an explicit sort key, or by preference score."""
    if sort:
        key = SORTS.get(sort)
        if key is None:
            raise ValueError(f"Unknown sort key: {sort}")
        return sorted(events, key=key)

    scores = {id(e): score_event(e, prefs) for e in events}
    return sorted(events, key=lambda e: -scores[id(e)])


def paginate(events: List[Event], page: int, size: int) -> List[Event]:
    """Slice out a 0-based page."""
    if page < 0 or size <= 0:
        raise ValueError("page must be >= 0 and size > 0")
    start = page * size
    return events[start:start + size]
