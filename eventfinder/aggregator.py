"""Multi-provider aggregation.

One ``AggregatorService`` is built per process. It owns the cache and the
rate limiter, so tests get isolation by building a fresh service.

Search flow: cache lookup -> fan out to every enabled source concurrently
(settle-all: each branch ends in a SourceResult, success or failure) ->
concatenate in priority order -> dedup -> distance -> filters -> rank ->
cache the full list -> paginate.

Sources are synchronous (``requests``); each runs in a worker thread with a
per-provider timeout so one slow provider cannot stall the response.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .cache import TTLCache
from .config import Settings
from .errors import AggregationError, ConfigurationError, EventFinderError, RateLimitExceeded
from .models import AggregatedResult, Coordinates, Event, Performance, SearchRequest, SourceResult
from .normalize import annotate_distance, apply_filters, deduplicate
from .ranking import paginate, rank_events
from .rate_limit import RateLimiter
from .sources import BaseSource, RapidAPISource, build_sources

logger = logging.getLogger("eventfinder.aggregator")

FEATURED_KEY = "featured_events"
CATEGORY_KEY = "events_by_category:{}"

Geocoder = Callable[[str], Optional[Coordinates]]


@dataclass
class _Collected:
    """Full ranked list for one request, before pagination. This is what gets cached."""
    events: List[Event]
    sources: List[str]
    source_counts: Dict[str, int]
    api_calls: int


class AggregatorService:
    def __init__(self, settings: Optional[Settings] = None,
                 sources: Optional[Sequence[BaseSource]] = None,
                 cache: Optional[TTLCache] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 geocoder: Optional[Geocoder] = None,
                 clock: Callable[[], float] = time.perf_counter):
        self.settings = settings or Settings.from_env()
        self.sources = list(sources) if sources is not None else build_sources(self.settings)
        self.cache = cache if cache is not None else TTLCache(max_entries=self.settings.cache_max_entries)
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter(
            self.settings.requests_per_minute
        )
        self.geocoder = geocoder
        self.clock = clock

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def search_events(self, request: SearchRequest) -> AggregatedResult:
        """Aggregate, rank and paginate events for one request.

        Raises ConfigurationError when no provider is enabled and
        AggregationError when every enabled provider failed.
        """
        started = self.clock()
        key = request.cache_key()

        collected = self._cache_get(key)
        cache_hits = 0
        if collected is not None:
            cache_hits = 1
            logger.debug(f"Cache hit for {key[:80]}")
        else:
            collected = await self._collect(request)
            self._cache_set(key, collected, self.settings.search_ttl)

        elapsed_ms = (self.clock() - started) * 1000
        result = AggregatedResult(
            events=paginate(collected.events, request.page, request.size),
            total_count=len(collected.events),
            page=request.page,
            size=request.size,
            sources=list(collected.sources),
            source_counts=dict(collected.source_counts),
            performance=Performance(
                total_time=elapsed_ms,
                api_calls=0 if cache_hits else collected.api_calls,
                cache_hits=cache_hits,
            ),
        )
        logger.info(
            f"Search returned {len(result.events)}/{result.total_count} events "
            f"from {len(result.sources)} source(s) in {elapsed_ms:.0f}ms"
        )
        return result

    def search_events_sync(self, request: SearchRequest) -> AggregatedResult:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.search_events(request))

    async def get_featured_events(self, limit: int = 3) -> List[Event]:
        """Soonest upcoming events across all providers."""
        cached = self._cache_get(FEATURED_KEY)
        if cached is None:
            collected = await self._collect(SearchRequest(sort="date"))
            now = datetime.now(timezone.utc)
            cached = [e for e in collected.events if _is_upcoming(e.starts_at, now)]
            self._cache_set(FEATURED_KEY, cached, self.settings.featured_ttl)
        return cached[:limit]

    async def get_events_by_category(self, category: str, limit: int = 20) -> List[Event]:
        key = CATEGORY_KEY.format(category.lower())
        cached = self._cache_get(key)
        if cached is None:
            collected = await self._collect(SearchRequest(categories=(category,), sort="date"))
            cached = collected.events
            self._cache_set(key, cached, self.settings.listing_ttl)
        return cached[:limit]

    async def get_event_details(self, event_id: str) -> Optional[Event]:
        """Full record for a RapidAPI event id (``ra_...``); None if unavailable."""
        source = next(
            (s for s in self.sources if isinstance(s, RapidAPISource) and s.enabled), None,
        )
        if source is None or not event_id.startswith(source.prefix):
            return None
        try:
            self.rate_limiter.acquire(source.name)
            return await asyncio.wait_for(
                asyncio.to_thread(source.get_event_details, event_id),
                timeout=self.settings.provider_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Event details for {event_id} timed out")
        except EventFinderError as e:
            logger.warning(f"Event details for {event_id} failed: {e}")
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def enabled_sources(self) -> List[BaseSource]:
        """Enabled sources in provider priority order."""
        order = {name: i for i, name in enumerate(self.settings.priority)}
        enabled = [s for s in self.sources if s.enabled]
        return sorted(enabled, key=lambda s: order.get(s.name, len(order)))

    async def _collect(self, request: SearchRequest) -> _Collected:
        sources = self.enabled_sources()
        if not sources:
            raise ConfigurationError(
                "No event providers are configured. Set at least one of "
                "TICKETMASTER_API_KEY, EVENTBRITE_API_TOKEN, PREDICTHQ_API_KEY, RAPIDAPI_KEY."
            )

        request = self._resolve_origin(request)
        outcomes = await asyncio.gather(
            *[self._run_source(source, request) for source in sources],
            return_exceptions=True,
        )

        results: List[SourceResult] = []
        api_calls = 0
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, BaseException):
                # _run_source handles expected failures; this is a bug in a source.
                logger.error(f"  {source.display_name}: unexpected {type(outcome).__name__}: {outcome}")
                results.append(SourceResult(source.display_name, success=False, error_message=str(outcome)))
                api_calls += 1
                continue
            result, called = outcome
            results.append(result)
            api_calls += called

        for result in results:
            logger.info(f"  {result.status_line} ({result.elapsed:.2f}s)")

        if not any(r.success for r in results):
            raise AggregationError({r.source_name: r.error_message or "unknown error" for r in results})

        all_events: List[Event] = []
        for result in results:
            all_events.extend(result.events)

        events = deduplicate(all_events)
        events = annotate_distance(events, request.coordinates)
        events = apply_filters(events, categories=request.categories, radius=request.radius)
        events = rank_events(events, request.sort, request.user_preferences)

        return _Collected(
            events=events,
            sources=[r.source_name for r in results if r.success and r.events],
            source_counts={r.source_name: len(r.events) for r in results if r.success},
            api_calls=api_calls,
        )

    async def _run_source(self, source: BaseSource, request: SearchRequest) -> Tuple[SourceResult, int]:
        """One settle-all branch. Returns (result, 1 if the provider was searched)."""
        started = self.clock()
        try:
            self.rate_limiter.acquire(source.name)
        except RateLimitExceeded as e:
            return SourceResult(source.display_name, success=False, error_message=str(e)), 0

        try:
            events = await asyncio.wait_for(
                asyncio.to_thread(source.search, request),
                timeout=self.settings.provider_timeout,
            )
        except asyncio.TimeoutError:
            message = f"timed out after {self.settings.provider_timeout:g}s"
            logger.warning(f"  {source.display_name}: {message}")
            return SourceResult(source.display_name, success=False, error_message=message,
                                elapsed=self.clock() - started), 1
        except EventFinderError as e:
            logger.warning(f"  {source.display_name} failed: {e}")
            return SourceResult(source.display_name, success=False, error_message=str(e),
                                elapsed=self.clock() - started), 1

        return SourceResult(source.display_name, events=events, elapsed=self.clock() - started), 1

    def _resolve_origin(self, request: SearchRequest) -> SearchRequest:
        if request.coordinates or not request.location or self.geocoder is None:
            return request
        try:
            origin = self.geocoder(request.location)
        except Exception as e:
            logger.warning(f"Geocoding '{request.location}' failed: {e}")
            return request
        if origin is None:
            return request
        return replace(request, coordinates=origin)

    def _cache_get(self, key: str):
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed, treating as miss: {e}")
            return None

    def _cache_set(self, key: str, value, ttl: float) -> None:
        try:
            self.cache.set(key, value, ttl)
        except Exception as e:
            logger.warning(f"Cache write failed: {e}")


def _is_upcoming(starts_at: Optional[datetime], now: datetime) -> bool:
    if starts_at is None:
        return True
    if starts_at.tzinfo:
        return starts_at >= now
    # Naive starts are venue-local wall-clock times in an unknown zone, so
    # compare calendar dates with a day of slack for any UTC offset.
    return starts_at.date() >= (now - timedelta(days=1)).date()
