"""Unit tests for AggregatorService."""
import asyncio
import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest

from eventfinder.aggregator import AggregatorService
from eventfinder.cache import TTLCache
from eventfinder.errors import AggregationError, ConfigurationError, ProviderError
from eventfinder.models import Coordinates, SearchRequest
from eventfinder.rate_limit import RateLimiter
from eventfinder.sources import RapidAPISource

from .conftest import FakeSource, failing, make_event


def run(coro):
    return asyncio.run(coro)


class SlowSource(FakeSource):
    def search(self, request):
        time.sleep(0.3)
        return super().search(request)


class TestSearchEvents:
    """Settle-all fan-out, merge and pagination."""

    def test_jazz_night_deduplicated_across_providers(self, settings):
        tm = FakeSource("ticketmaster", [make_event("Jazz Night", "Blue Note"), make_event("Jazz Night", "blue note")])
        eb = FakeSource("eventbrite", [make_event("Jazz Night", "Blue Note")])
        service = AggregatorService(settings, sources=[tm, eb])

        result = run(service.search_events(SearchRequest(location="New York", radius=25, size=2)))

        assert [e.title for e in result.events] == ["Jazz Night"]
        assert result.total_count == 1
        assert result.sources == ["Ticketmaster", "Eventbrite"]
        assert result.source_counts == {"Ticketmaster": 2, "Eventbrite": 1}
        assert result.performance.api_calls == 2
        assert result.performance.cache_hits == 0

    def test_failing_provider_is_isolated(self, settings):
        eb = FakeSource("eventbrite", [make_event("A"), make_event("B")])
        service = AggregatorService(settings, sources=[failing("ticketmaster"), eb])

        result = run(service.search_events(SearchRequest()))

        assert [e.title for e in result.events] == ["A", "B"]
        assert result.sources == ["Eventbrite"]

    def test_unexpected_exception_is_isolated(self, settings):
        broken = FakeSource("ticketmaster", error=RuntimeError("bug"))
        eb = FakeSource("eventbrite", [make_event("A")])
        service = AggregatorService(settings, sources=[broken, eb])

        result = run(service.search_events(SearchRequest()))

        assert result.sources == ["Eventbrite"]

    def test_no_enabled_providers(self, settings):
        sources = [FakeSource("ticketmaster", credential=""), FakeSource("eventbrite", credential="")]
        service = AggregatorService(settings, sources=sources)

        with pytest.raises(ConfigurationError):
            run(service.search_events(SearchRequest()))
        assert all(s.calls == 0 for s in sources)

    def test_all_providers_fail(self, settings):
        service = AggregatorService(settings, sources=[failing("ticketmaster"), failing("eventbrite")])

        with pytest.raises(AggregationError) as exc_info:
            run(service.search_events(SearchRequest()))
        assert set(exc_info.value.errors) == {"Ticketmaster", "Eventbrite"}

    def test_successful_empty_provider_is_not_failure(self, settings):
        service = AggregatorService(settings, sources=[failing("ticketmaster"), FakeSource("eventbrite")])

        result = run(service.search_events(SearchRequest()))

        assert result.events == []
        assert result.sources == []
        assert result.source_counts == {"Eventbrite": 0}

    def test_disabled_sources_skipped(self, settings):
        disabled = FakeSource("ticketmaster", [make_event("A")], credential="")
        eb = FakeSource("eventbrite", [make_event("B")])
        service = AggregatorService(settings, sources=[disabled, eb])

        result = run(service.search_events(SearchRequest()))

        assert disabled.calls == 0
        assert result.sources == ["Eventbrite"]

    def test_priority_order_decides_duplicate_winner(self, settings):
        eb = FakeSource("eventbrite", [make_event(id="eb_1", price="Free")])
        tm = FakeSource("ticketmaster", [make_event(id="tm_1", price="$20.00")])
        service = AggregatorService(settings, sources=[eb, tm])

        result = run(service.search_events(SearchRequest()))

        assert [e.id for e in result.events] == ["tm_1"]

    def test_rate_limited_provider_treated_as_failure(self, settings):
        limiter = RateLimiter({"ticketmaster": 0, "eventbrite": 30})
        tm = FakeSource("ticketmaster", [make_event("A")])
        eb = FakeSource("eventbrite", [make_event("B")])
        service = AggregatorService(settings, sources=[tm, eb], rate_limiter=limiter)

        result = run(service.search_events(SearchRequest()))

        assert tm.calls == 0
        assert result.sources == ["Eventbrite"]
        assert result.performance.api_calls == 1

    def test_api_calls_counts_each_provider_searched(self, settings):
        tm = FakeSource("ticketmaster", [make_event(str(i)) for i in range(25)])
        service = AggregatorService(settings, sources=[tm, failing("eventbrite")])

        result = run(service.search_events(SearchRequest()))

        assert result.total_count == 25
        assert result.performance.api_calls == 2

    def test_slow_provider_times_out(self, settings):
        settings = replace(settings, provider_timeout=0.05)
        slow = SlowSource("ticketmaster", [make_event("A")])
        eb = FakeSource("eventbrite", [make_event("B")])
        service = AggregatorService(settings, sources=[slow, eb])

        result = run(service.search_events(SearchRequest()))

        assert [e.title for e in result.events] == ["B"]
        assert result.sources == ["Eventbrite"]

    def test_pagination(self, settings):
        tm = FakeSource("ticketmaster", [make_event(f"E{i}") for i in range(5)])
        service = AggregatorService(settings, sources=[tm])

        result = run(service.search_events(SearchRequest(page=2, size=2)))

        assert [e.title for e in result.events] == ["E4"]
        assert result.total_count == 5
        assert result.total_pages == 3
        assert result.has_more is False

    def test_explicit_sort(self, settings):
        tm = FakeSource("ticketmaster", [make_event("small", attendees=5), make_event("big", attendees=500)])
        service = AggregatorService(settings, sources=[tm])

        result = run(service.search_events(SearchRequest(sort="popularity")))

        assert [e.title for e in result.events] == ["big", "small"]

    def test_category_filter(self, settings):
        tm = FakeSource("ticketmaster", [make_event("gig", category="Concerts"), make_event("match", category="Sports")])
        service = AggregatorService(settings, sources=[tm])

        result = run(service.search_events(SearchRequest(categories=("Music",))))

        assert [e.title for e in result.events] == ["gig"]


class TestCaching:
    """Result caching around the fan-out."""

    def test_second_search_is_served_from_cache(self, settings):
        tm = FakeSource("ticketmaster", [make_event(f"E{i}") for i in range(3)])
        service = AggregatorService(settings, sources=[tm])

        run(service.search_events(SearchRequest(size=2)))
        result = run(service.search_events(SearchRequest(page=1, size=2)))

        assert tm.calls == 1
        assert [e.title for e in result.events] == ["E2"]
        assert result.performance.cache_hits == 1
        assert result.performance.api_calls == 0
        assert result.sources == ["Ticketmaster"]

    def test_different_query_misses(self, settings):
        tm = FakeSource("ticketmaster", [make_event()])
        service = AggregatorService(settings, sources=[tm])

        run(service.search_events(SearchRequest(keyword="jazz")))
        run(service.search_events(SearchRequest(keyword="rock")))

        assert tm.calls == 2

    def test_cache_expiry(self, settings):
        now = [0.0]
        cache = TTLCache(clock=lambda: now[0])
        tm = FakeSource("ticketmaster", [make_event()])
        service = AggregatorService(settings, sources=[tm], cache=cache)

        run(service.search_events(SearchRequest()))
        now[0] = settings.search_ttl + 1
        run(service.search_events(SearchRequest()))

        assert tm.calls == 2

    def test_cache_failure_is_a_miss(self, settings):
        cache = Mock()
        cache.get.side_effect = RuntimeError("cache down")
        cache.set.side_effect = RuntimeError("cache down")
        tm = FakeSource("ticketmaster", [make_event()])
        service = AggregatorService(settings, sources=[tm], cache=cache)

        result = run(service.search_events(SearchRequest()))

        assert result.total_count == 1
        assert tm.calls == 1

    def test_failed_search_is_not_cached(self, settings):
        service = AggregatorService(settings, sources=[failing("ticketmaster")])

        with pytest.raises(AggregationError):
            run(service.search_events(SearchRequest()))
        assert len(service.cache) == 0


class TestGeocoding:
    """Optional geocoder for text locations."""

    def test_geocoded_origin_sets_distance_and_radius(self, settings):
        origin = Coordinates(40.7306, -73.9866)
        near = make_event("near", coordinates=Coordinates(40.7580, -73.9855))
        far = make_event("far", coordinates=Coordinates(42.3601, -71.0589))
        tm = FakeSource("ticketmaster", [near, far])
        geocoder = Mock(return_value=origin)
        service = AggregatorService(settings, sources=[tm], geocoder=geocoder)

        result = run(service.search_events(SearchRequest(location="New York", radius=25)))

        geocoder.assert_called_once_with("New York")
        assert [e.title for e in result.events] == ["near"]
        assert result.events[0].distance == pytest.approx(1.9, abs=0.2)

    def test_geocoder_failure_is_ignored(self, settings):
        tm = FakeSource("ticketmaster", [make_event()])
        geocoder = Mock(side_effect=RuntimeError("geocoder down"))
        service = AggregatorService(settings, sources=[tm], geocoder=geocoder)

        result = run(service.search_events(SearchRequest(location="New York")))

        assert result.total_count == 1
        assert result.events[0].distance is None

    def test_explicit_coordinates_skip_geocoder(self, settings):
        geocoder = Mock()
        tm = FakeSource("ticketmaster", [make_event()])
        service = AggregatorService(settings, sources=[tm], geocoder=geocoder)

        run(service.search_events(SearchRequest(location="NYC", coordinates=Coordinates(40.7, -74.0))))

        geocoder.assert_not_called()

    def test_distance_sort_puts_unlocated_events_last(self, settings):
        origin = Coordinates(40.7306, -73.9866)
        events = [
            make_event("far", coordinates=Coordinates(40.2206, -74.7597)),
            make_event("unknown"),
            make_event("near", coordinates=Coordinates(40.7400, -73.9900)),
        ]
        tm = FakeSource("ticketmaster", events)
        service = AggregatorService(settings, sources=[tm])

        request = SearchRequest(coordinates=origin, radius=100, sort="distance")
        result = run(service.search_events(request))

        assert [e.title for e in result.events] == ["near", "far", "unknown"]
        assert result.events[2].distance is None


class TestListings:
    """Featured and category listings."""

    def test_featured_events_are_soonest_upcoming(self, settings):
        now = datetime.now(timezone.utc)
        events = [
            make_event("next month", starts_at=now + timedelta(days=30)),
            make_event("past", starts_at=now - timedelta(days=1)),
            make_event("tomorrow", starts_at=now + timedelta(days=1)),
            make_event("next week", starts_at=now + timedelta(days=7)),
            make_event("undated"),
        ]
        tm = FakeSource("ticketmaster", events)
        service = AggregatorService(settings, sources=[tm])

        featured = run(service.get_featured_events(limit=3))

        assert [e.title for e in featured] == ["tomorrow", "next week", "next month"]

    def test_featured_naive_starts_compared_by_date(self, settings):
        today = datetime.now().replace(hour=20, minute=0, second=0, microsecond=0)
        events = [
            make_event("last week", starts_at=today - timedelta(days=7)),
            make_event("tonight", starts_at=today),
            make_event("in two days", starts_at=today + timedelta(days=2)),
        ]
        tm = FakeSource("ticketmaster", events)
        service = AggregatorService(settings, sources=[tm])

        featured = run(service.get_featured_events())

        assert [e.title for e in featured] == ["tonight", "in two days"]

    def test_featured_events_cached(self, settings):
        tm = FakeSource("ticketmaster", [make_event()])
        service = AggregatorService(settings, sources=[tm])

        run(service.get_featured_events())
        run(service.get_featured_events(limit=1))

        assert tm.calls == 1
        assert "featured_events" in service.cache

    def test_events_by_category(self, settings):
        tm = FakeSource("ticketmaster", [
            make_event("gig", category="Music"),
            make_event("match", category="Sports"),
            make_event("derby", category="Sports"),
        ])
        service = AggregatorService(settings, sources=[tm])

        sports = run(service.get_events_by_category("Sports"))
        first = run(service.get_events_by_category("sports", limit=1))

        assert [e.title for e in sports] == ["derby", "match"]
        assert [e.title for e in first] == ["derby"]
        assert tm.calls == 1
        assert "events_by_category:sports" in service.cache


class TestEventDetails:
    """RapidAPI detail lookups."""

    def test_details_for_rapidapi_id(self, settings):
        source = RapidAPISource("key")
        event = make_event(id="ra_ev1")
        service = AggregatorService(settings, sources=[source])

        with patch.object(source, "get_event_details", return_value=event) as details:
            assert run(service.get_event_details("ra_ev1")) is event
        details.assert_called_once_with("ra_ev1")

    def test_other_ids_return_none(self, settings):
        source = RapidAPISource("key")
        service = AggregatorService(settings, sources=[source])

        with patch.object(source, "get_event_details") as details:
            assert run(service.get_event_details("tm_123")) is None
        details.assert_not_called()

    def test_provider_error_returns_none(self, settings):
        source = RapidAPISource("key")
        service = AggregatorService(settings, sources=[source])

        with patch.object(source, "get_event_details", side_effect=ProviderError("RapidAPI", "API error", 500)):
            assert run(service.get_event_details("ra_ev1")) is None
