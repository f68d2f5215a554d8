"""RapidAPI Real-Time Events Search source.

API: "Real-Time Events Search" on RapidAPI (host real-time-events-search.p.rapidapi.com)
Requires: RAPIDAPI_KEY (RAPIDAPI_HOST optional)

The API takes a free-text ``query`` and pages with ``start`` in steps of
10. Results rarely carry structured prices or categories, so both are
inferred in :mod:`eventfinder.pricing`.
"""

import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..config import RAPIDAPI_DEFAULT_HOST
from ..date_utils import format_display_date, format_display_time, parse_timestamp
from ..errors import ProviderError
from ..models import (
    ADDRESS_TBA, VENUE_TBD, Coordinates, Event, Organizer, SearchRequest, TicketLink,
)
from ..pricing import categorize_event, extract_price
from .base import BaseSource, RawEvent, clean_text

SOURCE_NAME = "RapidAPI"
PAGE_SIZE = 10
MAX_PAGES = 3
PAGE_DELAY = 0.2  # seconds between paged requests


def build_params(request: SearchRequest, page: int = 0) -> Dict[str, Any]:
    """Translate a canonical request into search-events parameters."""
    terms = [request.keyword] if request.keyword else []
    terms.extend(request.categories)
    query = " ".join(t for t in terms if t) or "events"

    params: Dict[str, Any] = {
        "query": query,
        "date": "any",
        "is_virtual": "false",
        "start": page * PAGE_SIZE,
    }
    if request.location:
        params["query"] = f"{query} in {request.location}"
    elif request.coordinates:
        params["location"] = f"{request.coordinates.lat},{request.coordinates.lng}"
    return params


def _coordinates(data: RawEvent) -> Optional[Coordinates]:
    venue = data.get("venue") or {}
    for lat_key, lng_key, holder in (
        ("latitude", "longitude", venue),
        ("lat", "lng", venue),
        ("latitude", "longitude", data),
    ):
        point = Coordinates.parse(holder.get(lat_key), holder.get(lng_key))
        if point:
            return point
    return None


def _image(data: RawEvent) -> Optional[str]:
    for candidate in (data.get("thumbnail"), data.get("image"), (data.get("venue") or {}).get("image")):
        if isinstance(candidate, str) and candidate.startswith("http"):
            return candidate
    return None


def _ticket_links(data: RawEvent) -> List[TicketLink]:
    links = []
    if data.get("link"):
        links.append(TicketLink(source=data.get("publisher") or "Event Page", link=data["link"]))
    for link in data.get("ticket_links") or []:
        if not isinstance(link, dict) or not link.get("link"):
            continue
        if any(existing.link == link["link"] for existing in links):
            continue
        links.append(TicketLink(source=link.get("source") or "Tickets", link=link["link"]))
    return links


def parse_event(data: RawEvent) -> Optional[Event]:
    """Parse a single RapidAPI event."""
    event_id = data.get("event_id")
    name = (data.get("name") or "").strip()
    if not event_id or not name:
        return None

    starts_at = parse_timestamp(data.get("start_time"))
    venue = data.get("venue") or {}

    return Event(
        id=f"ra_{event_id}",
        title=name,
        description=clean_text(data.get("description")),
        category=categorize_event(data),
        date=format_display_date(starts_at),
        time=format_display_time(starts_at),
        location=venue.get("name") or VENUE_TBD,
        address=venue.get("full_address") or ADDRESS_TBA,
        price=extract_price(data),
        image=_image(data),
        organizer=Organizer(name=data.get("publisher") or venue.get("name") or SOURCE_NAME),
        source=SOURCE_NAME,
        coordinates=_coordinates(data),
        ticket_links=_ticket_links(data),
        starts_at=starts_at,
    )


class RapidAPISource(BaseSource):
    name = "rapidapi"
    display_name = SOURCE_NAME
    prefix = "ra_"

    def __init__(self, credential: Optional[str], host: str = RAPIDAPI_DEFAULT_HOST,
                 timeout: float = 8.0, session: Optional[requests.Session] = None,
                 max_pages: int = MAX_PAGES, page_delay: float = PAGE_DELAY):
        super().__init__(credential, timeout=timeout, session=session)
        self.host = host
        self.max_pages = max_pages
        self.page_delay = page_delay

    @property
    def base_url(self) -> str:
        return f"https://{self.host}"

    def _headers(self) -> Dict[str, str]:
        return {"x-rapidapi-key": self.credential, "x-rapidapi-host": self.host}

    def build_request(self, request: SearchRequest, page: int = 0) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        return f"{self.base_url}/search-events", build_params(request, page), self._headers()

    def parse_payload(self, data: Any) -> List[RawEvent]:
        if isinstance(data, list):
            return data
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        if isinstance(data.get("data"), list):
            return data["data"]
        if isinstance(data.get("results"), list):
            return data["results"]
        raise ValueError(f"no event list in response (keys: {sorted(data)[:5]})")

    def parse_event(self, raw: RawEvent) -> Optional[Event]:
        return parse_event(raw)

    def search(self, request: SearchRequest) -> List[Event]:
        """Walk up to ``max_pages`` pages of 10.

        A failure on the first page is a provider failure; a failure on a
        later page keeps what was already collected.
        """
        events: List[Event] = []
        for page in range(self.max_pages):
            url, params, headers = self.build_request(request, page)
            try:
                raw_events = self.extract_events(self.get_json(url, params, headers))
            except ProviderError as e:
                if page == 0:
                    raise
                self.logger.warning(f"  RapidAPI page {page + 1} failed, keeping {len(events)} events: {e}")
                break

            if not raw_events:
                break
            events.extend(self.parse_all(raw_events))
            if len(raw_events) < PAGE_SIZE:
                break
            if page < self.max_pages - 1 and self.page_delay:
                time.sleep(self.page_delay)
        return events

    def get_event_details(self, event_id: str) -> Optional[Event]:
        """Full record for one event; ``event_id`` may carry the ``ra_`` prefix."""
        if event_id.startswith(self.prefix):
            event_id = event_id[len(self.prefix):]
        data = self.get_json(f"{self.base_url}/event-details", {"event_id": event_id}, self._headers())
        record = data.get("data") if isinstance(data, dict) else None
        if not isinstance(record, dict):
            return None
        return parse_event(record)
