"""Ticketmaster Discovery API source.

API Docs: https://developer.ticketmaster.com/products-and-docs/apis/discovery-api/v2/
Requires: TICKETMASTER_API_KEY
Free tier: 5,000 calls/day, 5 requests/second.

Location goes in ``geoPoint`` (a geohash) with ``radius`` in miles; pages
are 0-based.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..config import TICKETMASTER_BASE_URL, TICKETMASTER_SEGMENTS, TICKETMASTER_SEGMENT_IDS
from ..date_utils import format_display_date, format_display_time, parse_timestamp
from ..geo import geohash
from ..models import (
    ADDRESS_TBA, PRICE_TBA, VENUE_TBD, Coordinates, Event, Organizer, SearchRequest, TicketLink,
)
from ..pricing import format_price
from .base import BaseSource, RawEvent, clean_text, iso_utc

SOURCE_NAME = "Ticketmaster"
PAGE_SIZE = 50


def build_params(request: SearchRequest, api_key: str, page: int = 0) -> Dict[str, Any]:
    """Translate a canonical request into Discovery API query parameters."""
    params: Dict[str, Any] = {
        "apikey": api_key,
        "size": PAGE_SIZE,
        "page": page,
        "sort": "date,asc",
    }

    if request.coordinates:
        params["geoPoint"] = geohash(request.coordinates)
        params["radius"] = int(round(request.radius))
        params["unit"] = "miles"
        params["sort"] = "distance,asc"
    elif request.location:
        params["city"] = request.location

    if request.keyword:
        params["keyword"] = request.keyword

    segment_ids = [
        TICKETMASTER_SEGMENT_IDS[c.lower()]
        for c in request.categories
        if c.lower() in TICKETMASTER_SEGMENT_IDS
    ]
    if segment_ids:
        params["segmentId"] = ",".join(dict.fromkeys(segment_ids))

    start = iso_utc(request.start_date_time)
    end = iso_utc(request.end_date_time)
    if start:
        params["startDateTime"] = start
    if end:
        params["endDateTime"] = end

    return params


def _pick_image(images: List[Dict[str, Any]]) -> Optional[str]:
    """Widest 16:9 image, else the widest of any ratio."""
    if not images:
        return None
    wide = [img for img in images if img.get("ratio") == "16_9"] or images
    best = max(wide, key=lambda img: img.get("width") or 0)
    return best.get("url")


def parse_event(data: RawEvent) -> Optional[Event]:
    """Parse a single Ticketmaster event into our Event model."""
    event_id = data.get("id")
    name = (data.get("name") or "").strip()
    if not event_id or not name:
        return None

    # Date/time: prefer local so the display matches the venue's clock
    start = (data.get("dates") or {}).get("start") or {}
    starts_at = None
    has_time = False
    local_date = start.get("localDate")
    local_time = None if start.get("timeTBA") or start.get("noSpecificTime") else start.get("localTime")
    if local_date:
        starts_at = parse_timestamp(f"{local_date}T{local_time}" if local_time else local_date)
        has_time = bool(local_time) and starts_at is not None
    if starts_at is None and start.get("dateTime"):
        starts_at = parse_timestamp(start["dateTime"])
        has_time = starts_at is not None

    # Venue
    venues = (data.get("_embedded") or {}).get("venues") or []
    venue = (venues[0] if venues else None) or {}
    venue_name = venue.get("name") or VENUE_TBD
    address_parts = [
        (venue.get("address") or {}).get("line1"),
        (venue.get("city") or {}).get("name"),
        (venue.get("state") or {}).get("stateCode"),
    ]
    address = ", ".join(p for p in address_parts if p) or ADDRESS_TBA
    location = venue.get("location") or {}
    coordinates = Coordinates.parse(location.get("latitude"), location.get("longitude"))

    # Category
    classifications = data.get("classifications") or [{}]
    segment = (classifications[0].get("segment") or {}).get("name", "")
    category = TICKETMASTER_SEGMENTS.get(segment.lower(), "Other")

    # Price
    price = PRICE_TBA
    ranges = data.get("priceRanges") or []
    if ranges:
        price = format_price(ranges[0].get("min"), ranges[0].get("max"))

    promoter = (data.get("promoter") or {}).get("name")
    url = data.get("url")

    return Event(
        id=f"tm_{event_id}",
        title=name,
        description=clean_text(data.get("info") or data.get("pleaseNote") or data.get("description")),
        category=category,
        date=format_display_date(starts_at),
        time=format_display_time(starts_at if has_time else None),
        location=venue_name,
        address=address,
        price=price,
        image=_pick_image(data.get("images") or []),
        organizer=Organizer(name=promoter or SOURCE_NAME),
        source=SOURCE_NAME,
        coordinates=coordinates,
        ticket_links=[TicketLink(source=SOURCE_NAME, link=url)] if url else [],
        starts_at=starts_at,
    )


class TicketmasterSource(BaseSource):
    name = "ticketmaster"
    display_name = SOURCE_NAME
    prefix = "tm_"

    def build_request(self, request: SearchRequest, page: int = 0) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        return f"{TICKETMASTER_BASE_URL}/events.json", build_params(request, self.credential, page), {}

    def parse_payload(self, data: Any) -> List[RawEvent]:
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        # No "_embedded" means zero results, not an error
        return (data.get("_embedded") or {}).get("events") or []

    def parse_event(self, raw: RawEvent) -> Optional[Event]:
        return parse_event(raw)
