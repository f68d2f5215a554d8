"""Shared fixtures and builders."""
from typing import List, Optional

import pytest

from eventfinder.config import Settings
from eventfinder.errors import ProviderError
from eventfinder.models import TBA, Event, Organizer, SearchRequest
from eventfinder.sources.base import BaseSource


def make_event(title="Jazz Night", location="Blue Note", date=TBA, **kwargs) -> Event:
    """Build an Event with sensible defaults for any field not given."""
    fields = dict(
        id=kwargs.pop("id", f"x_{title}_{location}"),
        title=title,
        description="",
        category="Music",
        date=date,
        time=TBA,
        location=location,
        address="Address TBA",
        price="Price TBA",
        organizer=Organizer(name="Test"),
    )
    fields.update(kwargs)
    return Event(**fields)


class FakeSource(BaseSource):
    """In-memory source: returns canned events or raises."""

    def __init__(self, name: str, events: Optional[List[Event]] = None,
                 error: Optional[Exception] = None, credential: str = "key"):
        self.name = name
        self.display_name = name.title()
        self.prefix = f"{name[:2]}_"
        super().__init__(credential)
        self.events = events or []
        self.error = error
        self.calls = 0

    def build_request(self, request, page=0):
        return "", {}, {}

    def parse_payload(self, data):
        return []

    def parse_event(self, raw):
        return None

    def search(self, request: SearchRequest) -> List[Event]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.events)


def failing(name: str) -> FakeSource:
    return FakeSource(name, error=ProviderError(name.title(), "API error", status=500, body="boom"))


@pytest.fixture
def settings():
    """Settings with every provider configured and no process environment."""
    return Settings(
        ticketmaster_api_key="tm-key",
        eventbrite_api_token="eb-token",
        predicthq_api_key="phq-key",
        rapidapi_key="ra-key",
    )
