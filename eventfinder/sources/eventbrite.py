"""Eventbrite API source.

API Docs: https://www.eventbrite.com/platform/api
Requires: EVENTBRITE_API_TOKEN (private OAuth token, sent as a Bearer header)

Location goes in ``location.latitude`` / ``location.longitude`` with
``location.within`` in kilometres; pages are 1-based.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..config import EVENTBRITE_BASE_URL, EVENTBRITE_CATEGORIES, EVENTBRITE_CATEGORY_IDS
from ..date_utils import format_display_date, format_display_time, parse_timestamp
from ..geo import miles_to_km
from ..models import (
    ADDRESS_TBA, PRICE_TBA, VENUE_TBD, Coordinates, Event, Organizer, SearchRequest, TicketLink,
)
from ..pricing import FREE, format_price
from .base import BaseSource, RawEvent, clean_text, iso_utc

SOURCE_NAME = "Eventbrite"


def build_params(request: SearchRequest, page: int = 0) -> Dict[str, Any]:
    """Translate a canonical request into Eventbrite search parameters."""
    params: Dict[str, Any] = {
        "expand": "venue,organizer,ticket_availability,category",
        "page": page + 1,
        "sort_by": "date",
    }

    if request.coordinates:
        params["location.latitude"] = str(request.coordinates.lat)
        params["location.longitude"] = str(request.coordinates.lng)
        params["location.within"] = f"{max(1, round(miles_to_km(request.radius)))}km"
        params["sort_by"] = "distance"
    elif request.location:
        params["location.address"] = request.location
        params["location.within"] = f"{max(1, round(miles_to_km(request.radius)))}km"

    if request.keyword:
        params["q"] = request.keyword

    category_ids = [
        EVENTBRITE_CATEGORY_IDS[c.lower()]
        for c in request.categories
        if c.lower() in EVENTBRITE_CATEGORY_IDS
    ]
    if category_ids:
        params["categories"] = ",".join(dict.fromkeys(category_ids))

    start = iso_utc(request.start_date_time)
    end = iso_utc(request.end_date_time)
    if start:
        params["start_date.range_start"] = start
    if end:
        params["start_date.range_end"] = end

    return params


def _price(data: RawEvent) -> str:
    if data.get("is_free"):
        return FREE
    availability = data.get("ticket_availability") or {}
    low = (availability.get("minimum_ticket_price") or {}).get("major_value")
    high = (availability.get("maximum_ticket_price") or {}).get("major_value")
    if low is None and high is None:
        return PRICE_TBA
    return format_price(
        float(low) if low is not None else None,
        float(high) if high is not None else None,
    )


def parse_event(data: RawEvent) -> Optional[Event]:
    """Parse a single Eventbrite event."""
    event_id = data.get("id")
    name = ((data.get("name") or {}).get("text") or "").strip()
    if not event_id or not name:
        return None

    # Local wall-clock time; fall back to UTC if that's all we have
    start = data.get("start") or {}
    starts_at = parse_timestamp(start.get("local")) or parse_timestamp(
        start.get("utc"), start.get("timezone"),
    )

    venue = data.get("venue") or {}
    address = venue.get("address") or {}
    coordinates = Coordinates.parse(
        venue.get("latitude") or address.get("latitude"),
        venue.get("longitude") or address.get("longitude"),
    )

    category_name = (data.get("category") or {}).get("name", "")
    description = data.get("description") or {}
    organizer = data.get("organizer") or {}
    logo = data.get("logo") or {}
    url = data.get("url")

    return Event(
        id=f"eb_{event_id}",
        title=name,
        description=clean_text(description.get("text") or description.get("html") or data.get("summary")),
        category=EVENTBRITE_CATEGORIES.get(category_name.lower(), "Other"),
        date=format_display_date(starts_at),
        time=format_display_time(starts_at),
        location=venue.get("name") or VENUE_TBD,
        address=address.get("localized_address_display") or ADDRESS_TBA,
        price=_price(data),
        image=logo.get("url"),
        organizer=Organizer(
            name=organizer.get("name") or SOURCE_NAME,
            avatar=(organizer.get("logo") or {}).get("url"),
        ),
        source=SOURCE_NAME,
        coordinates=coordinates,
        ticket_links=[TicketLink(source=SOURCE_NAME, link=url)] if url else [],
        starts_at=starts_at,
    )


class EventbriteSource(BaseSource):
    name = "eventbrite"
    display_name = SOURCE_NAME
    prefix = "eb_"

    def build_request(self, request: SearchRequest, page: int = 0) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        headers = {"Authorization": f"Bearer {self.credential}"}
        return f"{EVENTBRITE_BASE_URL}/events/search/", build_params(request, page), headers

    def parse_payload(self, data: Any) -> List[RawEvent]:
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        return data.get("events", [])

    def parse_event(self, raw: RawEvent) -> Optional[Event]:
        return parse_event(raw)
