"""Event deduplication and filtering.

The same show often comes back from Ticketmaster, Eventbrite and RapidAPI at
once. We collapse those into one entry.

Strategy: lowercase-trimmed title + venue + display date -> dedup key. The
first occurrence wins (sources are concatenated in priority order, so the
higher-priority provider's record is kept). Ticket links from the dropped
copies are appended to the kept record so no way of buying is lost.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .geo import haversine
from .models import Coordinates, Event

logger = logging.getLogger("eventfinder.normalize")

# Canonical filter label -> every category string that should match it
CATEGORY_ALIASES = {
    "music": {"music", "concerts", "club events"},
    "parties": {"parties", "day parties", "club events"},
    "arts": {"arts", "arts & theatre"},
}


def deduplicate(events: List[Event]) -> List[Event]:
    """Remove duplicate events, keeping the first of each key."""
    kept: Dict[str, Event] = {}
    keys_by_id: Dict[str, str] = {}

    for event in events:
        # A provider can return the same id twice with edited details.
        key = keys_by_id.get(event.id) or event.normalized_key()
        existing = kept.get(key)
        if existing is None:
            kept[key] = event
            keys_by_id[event.id] = key
            continue
        kept[key] = _merge_links(existing, event)

    removed = len(events) - len(kept)
    if removed:
        logger.debug(f"Removed {removed} duplicate(s) from {len(events)} events")
    return list(kept.values())


def _merge_links(keep: Event, drop: Event) -> Event:
    known = {t.link for t in keep.ticket_links}
    extra = [t for t in drop.ticket_links if t.link not in known]
    if not extra:
        return keep
    return replace(keep, ticket_links=keep.ticket_links + extra)


def annotate_distance(events: Iterable[Event], origin: Optional[Coordinates]) -> List[Event]:
    """Set ``distance`` (miles from origin) on every event that has coordinates."""
    out = []
    for event in events:
        if origin and event.coordinates:
            event = replace(event, distance=haversine(origin, event.coordinates))
        out.append(event)
    return out


def matches_categories(event: Event, categories: Iterable[str]) -> bool:
    category = event.category.lower()
    for wanted in categories:
        wanted = wanted.lower()
        if category == wanted or category in CATEGORY_ALIASES.get(wanted, ()):
            return True
    return False


def apply_filters(events: List[Event], categories: Iterable[str] = (),
                  radius: Optional[float] = None) -> List[Event]:
    """Post-fetch filters.

    Providers already filter server-side, but not all of them honour
    categories or radius (RapidAPI takes a single free-text query), so both
    are re-applied here. Radius is only enforced on events with a known distance;
    events without coordinates are kept.
    """
    categories = list(categories)
    kept = []
    for event in events:
        if categories and not matches_categories(event, categories):
            continue
        if radius is not None and event.distance is not None and event.distance > radius:
            continue
        kept.append(event)
    return kept
