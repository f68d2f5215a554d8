"""Unit tests for price and category inference."""
from eventfinder.pricing import (
    categorize_event,
    estimate_price,
    extract_price,
    format_price,
    price_value,
    prices_from_url,
)


class TestFormatPrice:
    """Display formatting for price ranges."""

    def test_range(self):
        assert format_price(10, 20) == "$10.00 - $20.00"

    def test_single_value(self):
        assert format_price(15, 15) == "$15.00"
        assert format_price(None, 15) == "$15.00"

    def test_zero_is_free(self):
        assert format_price(0, 0) == "Free"

    def test_unknown(self):
        assert format_price(None, None) == "Price TBA"

    def test_thousands_separator(self):
        assert format_price(1250) == "$1,250.00"


class TestPriceValue:
    """Numeric price extraction used for ranking and sorting."""

    def test_free(self):
        assert price_value("Free") == 0.0

    def test_lowest_of_range(self):
        assert price_value("$10.00 - $20.00") == 10.0

    def test_thousands(self):
        assert price_value("$1,250.00") == 1250.0

    def test_unknown(self):
        assert price_value("Price TBA") is None
        assert price_value("") is None


class TestPricesFromUrl:
    """Ticket-platform URL parsing."""

    def test_eventbrite_query_param(self):
        assert prices_from_url("https://www.eventbrite.com/e/show-123?price=35") == [35.0]

    def test_vividseats_min_max(self):
        url = "https://www.vividseats.com/tickets?priceMin=40&priceMax=90"
        assert sorted(prices_from_url(url)) == [40.0, 90.0]

    def test_seetickets_path(self):
        assert prices_from_url("https://www.seetickets.us/event/show/price-25/") == [25.0]

    def test_generic_cost_param(self):
        assert prices_from_url("https://tickets.example.com/buy?cost=12.50") == [12.5]

    def test_no_price(self):
        assert prices_from_url("https://tickets.example.com/buy/123") == []


class TestExtractPrice:
    """Precedence of the price inference chain."""

    def test_is_free_flag_wins(self):
        assert extract_price({"is_free": True, "price": {"min": 10}}) == "Free"

    def test_structured_price_beats_text(self):
        raw = {"name": "Show", "price": {"min": 10}, "description": "Tickets $50 at the door"}
        assert extract_price(raw) == "$10.00"

    def test_structured_range(self):
        assert extract_price({"price": {"min": 10, "max": 30}}) == "$10.00 - $30.00"

    def test_flat_min_max(self):
        assert extract_price({"min_price": "20", "max_price": "45"}) == "$20.00 - $45.00"

    def test_url_price(self):
        raw = {"name": "Show", "link": "https://www.eventbrite.com/e/show?price=22"}
        assert extract_price(raw) == "$22.00"

    def test_text_range(self):
        raw = {"name": "Show", "description": "Advance $15, door $20"}
        assert extract_price(raw) == "$15.00 - $20.00"

    def test_text_free(self):
        raw = {"name": "Community picnic", "description": "Free admission for all"}
        assert extract_price(raw) == "Free"

    def test_estimate_for_arena_concert(self):
        raw = {"name": "Big Tour", "tags": ["concert"], "venue": {"subtype": "arena"}}
        assert extract_price(raw) == "$45.00 - $150.00"

    def test_fallback_tba(self):
        assert extract_price({"name": "Book signing"}) == "Price TBA"


class TestEstimatePrice:
    """Category and venue based estimates."""

    def test_unknown_category(self):
        assert estimate_price("General Events", {}) is None

    def test_default_concert_band(self):
        assert estimate_price("Concerts", None) == "$25.00 - $75.00"

    def test_club_venue(self):
        assert estimate_price("Concerts", {"subtype": "night_club"}) == "$20.00 - $50.00"


class TestCategorizeEvent:
    """Ordered category rules."""

    def test_concert_tag(self):
        assert categorize_event({"name": "Anything", "tags": ["live music"]}) == "Concerts"

    def test_concert_beats_party(self):
        assert categorize_event({"name": "Release party", "tags": ["concert"]}) == "Concerts"

    def test_club_event_at_night(self):
        raw = {"name": "Club night", "start_time": "2026-03-14 23:00:00"}
        assert categorize_event(raw) == "Club Events"

    def test_club_in_the_morning_is_not_club_event(self):
        raw = {"name": "Book club", "start_time": "2026-03-14 10:00:00"}
        assert categorize_event(raw) == "General Events"

    def test_day_party_at_midday(self):
        raw = {"name": "Rooftop day party", "start_time": "2026-03-14 14:00:00"}
        assert categorize_event(raw) == "Day Parties"

    def test_party_without_time(self):
        assert categorize_event({"name": "Birthday party"}) == "Parties"

    def test_default(self):
        assert categorize_event({"name": "Farmers market"}) == "General Events"
