"""Multi-provider local event search."""

from .aggregator import AggregatorService
from .config import Settings
from .errors import AggregationError, ConfigurationError, EventFinderError, ProviderError, RateLimitExceeded
from .models import AggregatedResult, Coordinates, Event, SearchRequest, UserPreferences

__version__ = "0.1.0"

__all__ = [
    "AggregatedResult",
    "AggregationError",
    "AggregatorService",
    "ConfigurationError",
    "Coordinates",
    "Event",
    "EventFinderError",
    "ProviderError",
    "RateLimitExceeded",
    "SearchRequest",
    "Settings",
    "UserPreferences",
]
