"""Configuration for the event finder."""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

# ---------------------------------------------------------------------------
# API endpoints
# ---------------------------------------------------------------------------
TICKETMASTER_BASE_URL = "https://app.ticketmaster.com/discovery/v2"
EVENTBRITE_BASE_URL = "https://www.eventbriteapi.com/v3"
PREDICTHQ_BASE_URL = "https://api.predicthq.com/v1"
RAPIDAPI_DEFAULT_HOST = "real-time-events-search.p.rapidapi.com"

# ---------------------------------------------------------------------------
# Provider order and request budgets
# Earlier providers win ties in dedup, so order matters.
# ---------------------------------------------------------------------------
PROVIDER_PRIORITY = ("ticketmaster", "eventbrite", "predicthq", "rapidapi")

REQUESTS_PER_MINUTE = {
    "ticketmaster": 60,
    "eventbrite": 30,
    "predicthq": 30,
    "rapidapi": 20,
}

# ---------------------------------------------------------------------------
# Search defaults
# ---------------------------------------------------------------------------
DEFAULT_RADIUS_MILES = 25
DEFAULT_PAGE_SIZE = 20
DEFAULT_PROVIDER_TIMEOUT = 8.0  # seconds, per provider call

SEARCH_TTL = 5 * 60
LISTING_TTL = 15 * 60
FEATURED_TTL = 30 * 60
CACHE_MAX_ENTRIES = 256


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class Settings:
    """Everything the aggregator needs to know about its environment.

    Build one with :meth:`from_env` in production; tests construct it
    directly so no process environment leaks between cases.
    """
    ticketmaster_api_key: str = ""
    eventbrite_api_token: str = ""
    predicthq_api_key: str = ""
    rapidapi_key: str = ""
    rapidapi_host: str = RAPIDAPI_DEFAULT_HOST

    provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT
    search_ttl: float = SEARCH_TTL
    listing_ttl: float = LISTING_TTL
    featured_ttl: float = FEATURED_TTL
    cache_max_entries: int = CACHE_MAX_ENTRIES

    requests_per_minute: Dict[str, int] = field(
        default_factory=lambda: dict(REQUESTS_PER_MINUTE)
    )
    priority: Tuple[str, ...] = PROVIDER_PRIORITY

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            ticketmaster_api_key=os.environ.get("TICKETMASTER_API_KEY", ""),
            eventbrite_api_token=(
                os.environ.get("EVENTBRITE_API_TOKEN", "")
                or os.environ.get("EVENTBRITE_API_KEY", "")
            ),
            predicthq_api_key=os.environ.get("PREDICTHQ_API_KEY", ""),
            rapidapi_key=os.environ.get("RAPIDAPI_KEY", ""),
            rapidapi_host=os.environ.get("RAPIDAPI_HOST", "") or RAPIDAPI_DEFAULT_HOST,
            provider_timeout=_env_float("EVENTFINDER_PROVIDER_TIMEOUT", DEFAULT_PROVIDER_TIMEOUT),
            search_ttl=_env_float("EVENTFINDER_SEARCH_TTL", SEARCH_TTL),
            listing_ttl=_env_float("EVENTFINDER_LISTING_TTL", LISTING_TTL),
            featured_ttl=_env_float("EVENTFINDER_FEATURED_TTL", FEATURED_TTL),
            cache_max_entries=_env_int("EVENTFINDER_CACHE_MAX_ENTRIES", CACHE_MAX_ENTRIES),
        )

    def credential_for(self, provider: str) -> Optional[str]:
        """Return the configured credential for a provider, or None if unset."""
        value = {
            "ticketmaster": self.ticketmaster_api_key,
            "eventbrite": self.eventbrite_api_token,
            "predicthq": self.predicthq_api_key,
            "rapidapi": self.rapidapi_key,
        }.get(provider, "")
        return value or None


# ---------------------------------------------------------------------------
# Canonical categories
# Each source maps its own classification into one of these labels.
# ---------------------------------------------------------------------------
CANONICAL_CATEGORIES = ["Music", "Sports", "Arts", "Comedy", "Family", "Business", "Other"]

TICKETMASTER_SEGMENTS = {
    "music": "Music",
    "sports": "Sports",
    "arts & theatre": "Arts",
    "comedy": "Comedy",
    "family": "Family",
    "miscellaneous": "Other",
}

# Outbound: canonical label -> Ticketmaster segment id
TICKETMASTER_SEGMENT_IDS = {
    "music": "KZFzniwnSyZfZ7v7nJ",
    "sports": "KZFzniwnSyZfZ7v7nE",
    "arts": "KZFzniwnSyZfZ7v7na",
    "family": "KZFzniwnSyZfZ7v7nF",
    "business": "KZFzniwnSyZfZ7v7n1",
}

EVENTBRITE_CATEGORIES = {
    "music": "Music",
    "music & audio": "Music",
    "sports & fitness": "Sports",
    "performing & visual arts": "Arts",
    "comedy": "Comedy",
    "family & education": "Family",
    "business & professional": "Business",
}

EVENTBRITE_CATEGORY_IDS = {
    "music": "103",
    "business": "101",
    "arts": "105",
    "sports": "108",
    "family": "115",
}

PREDICTHQ_CATEGORIES = {
    "concerts": "Music",
    "festivals": "Music",
    "sports": "Sports",
    "performing-arts": "Arts",
    "community": "Family",
    "expos": "Business",
    "conferences": "Business",
}

PREDICTHQ_CATEGORY_SLUGS = {
    "music": "concerts,festivals",
    "sports": "sports",
    "arts": "performing-arts",
    "comedy": "performing-arts",
    "family": "community",
    "business": "conferences,expos",
}
