"""Price and category inference for sources without structured fields.

RapidAPI's real-time events search often returns nothing but a name, a
description, a venue and a handful of ticket links. The helpers here squeeze
a display price and a category out of that, trying the most reliable signal
first:

1. explicit free flag
2. structured ``price{min,max}`` object
3. flat ``min_price`` / ``max_price`` fields
4. prices embedded in ticket-platform URLs
5. ``$NN`` amounts or free indicators in title, description and link
6. an estimate from category and venue type
7. ``"Price TBA"``
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse

from .date_utils import parse_timestamp
from .models import PRICE_TBA

FREE = "Free"

DOLLAR_RE = re.compile(r"\$\s?(\d{1,5}(?:\.\d{1,2})?)")
PRICE_PARAM_RE = re.compile(r"[?&](?:price|cost|min_?price|max_?price)=(\d{1,5}(?:\.\d{1,2})?)", re.IGNORECASE)
SEETICKETS_PATH_RE = re.compile(r"/(?:price|tickets?)[-/](\d{1,5}(?:[.-]\d{2})?)(?:/|$)", re.IGNORECASE)
FREE_RE = re.compile(r"\b(free admission|free entry|free event|no charge|complimentary|free)\b", re.IGNORECASE)

# Query parameters each platform is known to carry prices in.
EVENTBRITE_PARAMS = ("price", "ticket_price", "min_price", "max_price")
VIVIDSEATS_PARAMS = ("price", "priceMin", "priceMax", "minPrice", "maxPrice")

# ---------------------------------------------------------------------------
# Category rules (order matters: first match wins)
# ---------------------------------------------------------------------------
CONCERT_TAGS = {"concert", "music", "show", "live music"}
CONCERT_VENUES = {"concert_hall", "live_music_venue", "music_venue"}
CLUB_TAGS = {"clubbing", "dj", "nightlife", "club"}
DAY_PARTY_TAGS = {"party", "social", "day party"}
PARTY_TAGS = {"party", "celebration"}

# (low, high) estimates by category and venue kind
PRICE_ESTIMATES = {
    "Concerts": {"arena": (45.0, 150.0), "hall": (25.0, 75.0), "club": (20.0, 50.0), None: (25.0, 75.0)},
    "Club Events": {None: (15.0, 40.0)},
    "Day Parties": {None: (10.0, 30.0)},
    "Parties": {None: (10.0, 25.0)},
}

ARENA_VENUES = {"arena", "stadium", "amphitheater", "amphitheatre"}
HALL_VENUES = {"concert_hall", "live_music_venue", "music_venue", "performing_arts_theater", "theater"}
CLUB_VENUES = {"night_club", "bar", "dance_club"}


def format_amount(value: float) -> str:
    return f"${value:,.2f}"


def format_price(low: Optional[float], high: Optional[float] = None) -> str:
    """Render a price range for display."""
    if low is None and high is None:
        return PRICE_TBA
    if low is None:
        low = high
    if high is None:
        high = low
    if high < low:
        low, high = high, low
    if high == 0:
        return FREE
    if low == high:
        return format_amount(low)
    return f"{format_amount(low)} - {format_amount(high)}"


def price_value(display: str) -> Optional[float]:
    """Lowest numeric price in a display string: 'Free' -> 0, 'Price TBA' -> None."""
    if not display:
        return None
    if display.strip().lower() == "free":
        return 0.0
    match = DOLLAR_RE.search(display.replace(",", ""))
    if not match:
        return None
    return float(match.group(1))


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace("$", "").replace(",", ""))
    except ValueError:
        return None


def _is_true(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() == "true")


def _range(values: Iterable[float]) -> Optional[str]:
    values = list(values)
    if not values:
        return None
    return format_price(min(values), max(values))


def _ticket_urls(event: Dict[str, Any]) -> List[str]:
    urls = []
    for link in event.get("ticket_links") or []:
        if isinstance(link, dict) and link.get("link"):
            urls.append(str(link["link"]))
    if event.get("link"):
        urls.append(str(event["link"]))
    return urls


def prices_from_url(url: str) -> List[float]:
    """Every price a ticket-platform URL gives away."""
    parsed = urlparse(url)
    host = parsed.netloc.lower()
    query = parse_qs(parsed.query)
    found: List[float] = []

    if "eventbrite." in host:
        keys = EVENTBRITE_PARAMS
    elif "vividseats." in host:
        keys = VIVIDSEATS_PARAMS
    else:
        keys = ()
    for key in keys:
        for raw in query.get(key, []):
            value = _to_float(raw)
            if value is not None:
                found.append(value)

    if "seetickets." in host:
        for match in SEETICKETS_PATH_RE.finditer(parsed.path):
            value = _to_float(match.group(1).replace("-", "."))
            if value is not None:
                found.append(value)

    if not found:
        decoded = unquote(url)
        found.extend(float(m) for m in PRICE_PARAM_RE.findall(decoded))
        found.extend(float(m) for m in DOLLAR_RE.findall(decoded))
    return found


def _venue_kind(venue: Dict[str, Any]) -> Optional[str]:
    subtype = str(venue.get("subtype") or "").lower()
    subtypes = {str(s).lower() for s in venue.get("subtypes") or []}
    for kind, names in (("arena", ARENA_VENUES), ("club", CLUB_VENUES), ("hall", HALL_VENUES)):
        if subtype in names:
            return kind
    for kind, names in (("arena", ARENA_VENUES), ("club", CLUB_VENUES), ("hall", HALL_VENUES)):
        if subtypes & names:
            return kind
    return None


def estimate_price(category: str, venue: Optional[Dict[str, Any]]) -> Optional[str]:
    """Typical price band for a category at a kind of venue, if we have one."""
    table = PRICE_ESTIMATES.get(category)
    if not table:
        return None
    kind = _venue_kind(venue or {})
    low, high = table.get(kind) or table[None]
    return format_price(low, high)


def extract_price(event: Dict[str, Any]) -> str:
    """Best display price for a raw RapidAPI event."""
    price = event.get("price") if isinstance(event.get("price"), dict) else {}

    if _is_true(event.get("is_free")) or _is_true(price.get("is_free")):
        return FREE

    low, high = _to_float(price.get("min")), _to_float(price.get("max"))
    if low is not None or high is not None:
        return format_price(low, high)

    low, high = _to_float(event.get("min_price")), _to_float(event.get("max_price"))
    if low is not None or high is not None:
        return format_price(low, high)

    url_prices = []
    for url in _ticket_urls(event):
        url_prices.extend(prices_from_url(url))
    from_urls = _range(url_prices)
    if from_urls:
        return from_urls

    text = " ".join(
        str(event.get(key) or "") for key in ("name", "description", "link")
    )
    from_text = _range(float(m) for m in DOLLAR_RE.findall(text.replace(",", "")))
    if from_text:
        return from_text
    if FREE_RE.search(text):
        return FREE

    estimate = estimate_price(categorize_event(event), event.get("venue"))
    if estimate:
        return estimate

    return PRICE_TBA


def _start_hour(event: Dict[str, Any]) -> Optional[int]:
    dt = parse_timestamp(event.get("start_time"))
    return dt.hour if dt else None


def _signals(event: Dict[str, Any]) -> Tuple[set, str, set, str, str]:
    venue = event.get("venue") or {}
    tags = {str(t).lower() for t in event.get("tags") or []}
    subtype = str(venue.get("subtype") or "").lower()
    subtypes = {str(s).lower() for s in venue.get("subtypes") or []}
    name = str(event.get("name") or "").lower()
    description = str(event.get("description") or "").lower()
    return tags, subtype, subtypes, name, description


def categorize_event(event: Dict[str, Any]) -> str:
    """Concerts, Club Events, Day Parties, Parties or General Events."""
    tags, subtype, subtypes, name, description = _signals(event)

    if tags & CONCERT_TAGS or subtype in CONCERT_VENUES or subtypes & {"concert_hall", "live_music_venue"}:
        return "Concerts"

    if (
        subtype == "night_club"
        or "night_club" in subtypes
        or tags & CLUB_TAGS
        or "club" in name
        or "club" in description
    ):
        hour = _start_hour(event)
        if hour is not None and (hour >= 18 or hour <= 6):
            return "Club Events"

    if tags & DAY_PARTY_TAGS or "day party" in name or "day party" in description:
        hour = _start_hour(event)
        if hour is not None and 12 <= hour <= 18:
            return "Day Parties"

    if tags & PARTY_TAGS or "party" in name or "party" in description:
        return "Parties"

    return "General Events"
