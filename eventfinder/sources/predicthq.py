"""PredictHQ Events API source.

API Docs: https://docs.predicthq.com/api/events/search-events
Requires: PREDICTHQ_API_KEY (Bearer access token)

Location is a single ``within`` filter, ``<radius>mi@<lat>,<lng>``;
pagination is offset-based. PredictHQ publishes no ticket prices, but it
does predict attendance, which we pass through as ``attendees``.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..config import PREDICTHQ_BASE_URL, PREDICTHQ_CATEGORIES, PREDICTHQ_CATEGORY_SLUGS
from ..date_utils import format_display_date, format_display_time, parse_timestamp
from ..models import (
    ADDRESS_TBA, PRICE_TBA, VENUE_TBD, Coordinates, Event, Organizer, SearchRequest,
)
from .base import BaseSource, RawEvent, clean_text, iso_utc

SOURCE_NAME = "PredictHQ"
PAGE_SIZE = 50


def build_params(request: SearchRequest, page: int = 0) -> Dict[str, Any]:
    """Translate a canonical request into PredictHQ search parameters."""
    params: Dict[str, Any] = {
        "limit": PAGE_SIZE,
        "offset": page * PAGE_SIZE,
        "sort": "start",
    }

    if request.coordinates:
        radius = f"{request.radius:g}"
        params["within"] = f"{radius}mi@{request.coordinates.lat},{request.coordinates.lng}"
        params["sort"] = "rank"

    query = " ".join(p for p in (request.keyword, None if request.coordinates else request.location) if p)
    if query:
        params["q"] = query

    slugs = []
    for category in request.categories:
        slugs.extend(PREDICTHQ_CATEGORY_SLUGS.get(category.lower(), "").split(","))
    slugs = [s for s in dict.fromkeys(slugs) if s]
    if slugs:
        params["category"] = ",".join(slugs)

    start = iso_utc(request.start_date_time)
    end = iso_utc(request.end_date_time)
    if start:
        params["start.gte"] = start
    if end:
        params["start.lte"] = end

    return params


def _point(data: RawEvent) -> Optional[Coordinates]:
    """PredictHQ stores points GeoJSON-style: [lng, lat]."""
    geometry = ((data.get("geo") or {}).get("geometry") or {})
    if geometry.get("type", "Point") == "Point" and len(geometry.get("coordinates") or []) == 2:
        lng, lat = geometry["coordinates"]
        return Coordinates.parse(lat, lng)
    location = data.get("location") or []
    if len(location) == 2:
        return Coordinates.parse(location[1], location[0])
    return None


def parse_event(data: RawEvent) -> Optional[Event]:
    """Parse a single PredictHQ event."""
    event_id = data.get("id")
    title = (data.get("title") or "").strip()
    if not event_id or not title:
        return None

    starts_at = parse_timestamp(data.get("start"), data.get("timezone"))

    venue = next((e for e in data.get("entities") or [] if e.get("type") == "venue"), {})
    address = (
        venue.get("formatted_address")
        or ((data.get("geo") or {}).get("address") or {}).get("formatted_address")
        or ADDRESS_TBA
    )

    attendance = data.get("phq_attendance")
    attendees = int(attendance) if isinstance(attendance, (int, float)) and attendance >= 0 else None

    return Event(
        id=f"phq_{event_id}",
        title=title,
        description=clean_text(data.get("description")),
        category=PREDICTHQ_CATEGORIES.get(str(data.get("category", "")).lower(), "Other"),
        date=format_display_date(starts_at),
        time=format_display_time(starts_at),
        location=venue.get("name") or VENUE_TBD,
        address=address,
        price=PRICE_TBA,
        organizer=Organizer(name=SOURCE_NAME),
        source=SOURCE_NAME,
        attendees=attendees,
        coordinates=_point(data),
        starts_at=starts_at,
    )


class PredictHQSource(BaseSource):
    name = "predicthq"
    display_name = SOURCE_NAME
    prefix = "phq_"

    def build_request(self, request: SearchRequest, page: int = 0) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        headers = {"Authorization": f"Bearer {self.credential}"}
        return f"{PREDICTHQ_BASE_URL}/events/", build_params(request, page), headers

    def parse_payload(self, data: Any) -> List[RawEvent]:
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        return data.get("results", [])

    def parse_event(self, raw: RawEvent) -> Optional[Event]:
        return parse_event(raw)
