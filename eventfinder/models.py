"""Data models for aggregated events."""

import json
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import DEFAULT_PAGE_SIZE, DEFAULT_RADIUS_MILES

TBA = "TBA"
VENUE_TBD = "TBD"
ADDRESS_TBA = "Address TBA"
PRICE_TBA = "Price TBA"

PRICE_PREFERENCES = ("free", "low", "medium", "high", "any")
TIME_PREFERENCES = ("morning", "afternoon", "evening", "night", "any")
SORT_KEYS = ("date", "popularity", "price", "distance")


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    @classmethod
    def parse(cls, lat: Any, lng: Any) -> Optional["Coordinates"]:
        """Build coordinates from loose provider values; None if unusable."""
        try:
            lat_f = float(lat)
            lng_f = float(lng)
        except (TypeError, ValueError):
            return None
        if math.isnan(lat_f) or math.isnan(lng_f):
            return None
        if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lng_f <= 180.0):
            return None
        return cls(lat=lat_f, lng=lng_f)


@dataclass
class Organizer:
    name: str
    avatar: Optional[str] = None


@dataclass
class TicketLink:
    source: str
    link: str


@dataclass
class Event:
    """A single event, normalized from any provider."""
    id: str  # Source-prefixed: tm_, eb_, phq_, ra_
    title: str
    description: str
    category: str
    date: str  # e.g. "March 15, 2026" or "TBA"
    time: str  # e.g. "7:30 PM" or "TBA"
    location: str  # Venue name or "TBD"
    address: str  # Formatted address or "Address TBA"
    price: str  # "Free", "$10.00", "$10.00 - $20.00", "Price TBA"
    organizer: Organizer
    source: str = ""  # Provider that produced this record
    image: Optional[str] = None
    attendees: Optional[int] = None  # None when the provider does not report it
    coordinates: Optional[Coordinates] = None
    ticket_links: List[TicketLink] = field(default_factory=list)
    is_favorite: bool = False
    starts_at: Optional[datetime] = None  # Parsed start, used for sorting
    distance: Optional[float] = None  # Miles from the search origin

    @property
    def sort_key(self):
        """Sort by start, then title. Unknown starts go last."""
        if self.starts_at is None:
            return (1, 0.0, self.title.lower())
        return (0, self.starts_at.timestamp(), self.title.lower())

    @property
    def display_line(self) -> str:
        """Format as 'TITLE | VENUE | DATE TIME | PRICE'."""
        when = self.date if self.time == TBA else f"{self.date} {self.time}"
        return f"{self.title} | {self.location} | {when} | {self.price}"

    def normalized_key(self) -> str:
        """Key for deduplication: lowercase-trimmed title + venue + date."""
        return f"{self.title.strip().lower()}|{self.location.strip().lower()}|{self.date.strip().lower()}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "date": self.date,
            "time": self.time,
            "location": self.location,
            "address": self.address,
            "price": self.price,
            "image": self.image,
            "organizer": asdict(self.organizer),
            "attendees": self.attendees,
            "coordinates": asdict(self.coordinates) if self.coordinates else None,
            "ticketLinks": [asdict(t) for t in self.ticket_links],
            "isFavorite": self.is_favorite,
            "source": self.source,
            "distance": round(self.distance, 2) if self.distance is not None else None,
        }


@dataclass(frozen=True)
class UserPreferences:
    favorite_categories: tuple = ()
    price_preference: str = "any"
    time_preference: str = "any"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["UserPreferences"]:
        if not data:
            return None
        price = str(data.get("pricePreference") or "any").lower()
        when = str(data.get("timePreference") or "any").lower()
        if price not in PRICE_PREFERENCES:
            raise ValueError(f"Unknown pricePreference: {price}")
        if when not in TIME_PREFERENCES:
            raise ValueError(f"Unknown timePreference: {when}")
        return cls(
            favorite_categories=tuple(data.get("favoriteCategories") or ()),
            price_preference=price,
            time_preference=when,
        )


@dataclass(frozen=True)
class SearchRequest:
    """Canonical search request. Built per search, never persisted."""
    keyword: Optional[str] = None
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    radius: float = DEFAULT_RADIUS_MILES  # miles
    start_date_time: Optional[str] = None  # ISO-8601
    end_date_time: Optional[str] = None
    categories: tuple = ()
    page: int = 0  # 0-based
    size: int = DEFAULT_PAGE_SIZE
    sort: Optional[str] = None  # None -> preference ranking
    user_preferences: Optional[UserPreferences] = None

    def __post_init__(self):
        if self.page < 0:
            raise ValueError("page must be >= 0")
        if self.size <= 0:
            raise ValueError("size must be > 0")
        if self.radius <= 0:
            raise ValueError("radius must be > 0")
        if self.sort is not None and self.sort not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {self.sort}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchRequest":
        """Build from the JSON-shaped request the UI sends (camelCase keys)."""
        coords = data.get("coordinates")
        coordinates = None
        if coords:
            coordinates = Coordinates.parse(coords.get("lat"), coords.get("lng"))
            if coordinates is None:
                raise ValueError(f"Invalid coordinates: {coords!r}")
        sort = data.get("sort")
        if sort == "relevance":
            sort = None
        return cls(
            keyword=data.get("keyword") or None,
            location=data.get("location") or None,
            coordinates=coordinates,
            radius=float(data.get("radius") or DEFAULT_RADIUS_MILES),
            start_date_time=data.get("startDateTime") or None,
            end_date_time=data.get("endDateTime") or None,
            categories=tuple(data.get("categories") or ()),
            page=int(data.get("page") or 0),
            size=int(data.get("size") or DEFAULT_PAGE_SIZE),
            sort=sort,
            user_preferences=UserPreferences.from_dict(data.get("userPreferences")),
        )

    def to_dict(self) -> Dict[str, Any]:
        prefs = None
        if self.user_preferences:
            prefs = {
                "favoriteCategories": list(self.user_preferences.favorite_categories),
                "pricePreference": self.user_preferences.price_preference,
                "timePreference": self.user_preferences.time_preference,
            }
        return {
            "keyword": self.keyword,
            "location": self.location,
            "coordinates": asdict(self.coordinates) if self.coordinates else None,
            "radius": self.radius,
            "startDateTime": self.start_date_time,
            "endDateTime": self.end_date_time,
            "categories": list(self.categories),
            "page": self.page,
            "size": self.size,
            "sort": self.sort,
            "userPreferences": prefs,
        }

    def cache_key(self, include_page: bool = False) -> str:
        """Deterministic key for the cache.

        The full ranked result is cached before pagination, so page and size
        are left out unless asked for.
        """
        data = self.to_dict()
        if not include_page:
            data.pop("page")
            data.pop("size")
        return "search:" + json.dumps(data, sort_keys=True, separators=(",", ":"))


@dataclass
class SourceResult:
    """Result from a single provider call."""
    source_name: str
    events: List[Event] = field(default_factory=list)
    success: bool = True
    error_message: Optional[str] = None
    elapsed: float = 0.0  # seconds

    @property
    def status_line(self) -> str:
        if not self.success:
            return f"{self.source_name}: ERROR - {self.error_message}"
        return f"{self.source_name}: {len(self.events)} event(s) found"


@dataclass
class Performance:
    total_time: float = 0.0  # ms
    api_calls: int = 0  # Provider searches attempted; a paged search counts once
    cache_hits: int = 0


@dataclass
class AggregatedResult:
    events: List[Event]
    total_count: int
    page: int
    size: int
    sources: List[str]
    performance: Performance = field(default_factory=Performance)
    source_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.size) if self.size else 0

    @property
    def has_more(self) -> bool:
        return (self.page + 1) * self.size < self.total_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "totalCount": self.total_count,
            "page": self.page,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
            "sources": list(self.sources),
            "sourceCounts": dict(self.source_counts),
            "performance": {
                "totalTime": round(self.performance.total_time, 1),
                "apiCalls": self.performance.api_calls,
                "cacheHits": self.performance.cache_hits,
            },
        }
