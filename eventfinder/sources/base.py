"""Shared plumbing for provider sources.

Every source turns a :class:`SearchRequest` into the provider's own query
dialect, makes one HTTP call (or a short run of paged calls), and maps each
raw record through a pure ``parse_event`` function into an :class:`Event`.
Sources hold no state beyond their credential and HTTP session.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from ..errors import ProviderError
from ..models import Event, SearchRequest

USER_AGENT = "eventfinder/1.0"

# Raw provider payloads are plain JSON objects.
RawEvent = Dict[str, Any]


def clean_text(value: Any) -> str:
    """Plain text from a provider field that may contain HTML."""
    if not value:
        return ""
    text = str(value)
    if "<" in text and ">" in text:
        text = BeautifulSoup(text, "html.parser").get_text(" ", strip=True)
    return " ".join(text.split())


def iso_utc(value: Optional[str]) -> Optional[str]:
    """Trim an ISO date/datetime to the 'YYYY-MM-DDTHH:MM:SSZ' most APIs accept."""
    if not value:
        return None
    text = value.strip()
    if len(text) == 10:
        return f"{text}T00:00:00Z"
    text = text.replace(" ", "T")
    if text.endswith("Z"):
        text = text[:-1]
    text = text.split("+")[0].split(".")[0]
    if len(text) == 16:
        text += ":00"
    return f"{text}Z"


class BaseSource(ABC):
    """Interface every provider adapter implements."""

    #: Registry name, e.g. ``"ticketmaster"``
    name: str = ""
    #: Human-readable name used in results and logs
    display_name: str = ""
    #: Id prefix, e.g. ``"tm_"``
    prefix: str = ""

    def __init__(self, credential: Optional[str], timeout: float = 8.0,
                 session: Optional[requests.Session] = None):
        self.credential = credential or ""
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logging.getLogger(f"eventfinder.{self.name}")

    @property
    def enabled(self) -> bool:
        return bool(self.credential)

    @abstractmethod
    def build_request(self, request: SearchRequest, page: int = 0) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        """Return ``(url, params, headers)`` for one provider page (0-based)."""

    @abstractmethod
    def parse_payload(self, data: Any) -> List[RawEvent]:
        """Pull the list of raw records out of a decoded response body."""

    @abstractmethod
    def parse_event(self, raw: RawEvent) -> Optional[Event]:
        """Map one raw record to an Event. Pure; None to skip the record."""

    def search(self, request: SearchRequest) -> List[Event]:
        """Fetch and normalize events for a canonical request.

        Raises ProviderError on any HTTP or payload failure; never retries.
        """
        url, params, headers = self.build_request(request)
        data = self.get_json(url, params, headers)
        return self.parse_all(self.extract_events(data))

    def extract_events(self, data: Any) -> List[RawEvent]:
        try:
            raw_events = self.parse_payload(data)
        except (ValueError, TypeError, AttributeError) as e:
            raise ProviderError(self.display_name, f"malformed response: {e}") from e
        if not isinstance(raw_events, list):
            raise ProviderError(self.display_name, "malformed response: events is not a list")
        return raw_events

    def parse_all(self, raw_events: List[RawEvent]) -> List[Event]:
        events = []
        for raw in raw_events:
            try:
                event = self.parse_event(raw)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                self.logger.debug(f"Skipping {self.display_name} event: {e}")
                continue
            if event is not None:
                events.append(event)
        return events

    def get_json(self, url: str, params: Dict[str, Any], headers: Dict[str, str]) -> Any:
        """GET a JSON document, turning every failure into ProviderError."""
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json", **headers}
        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ProviderError(self.display_name, f"request failed: {str(e)[:100]}") from e

        if not response.ok:
            raise ProviderError(
                self.display_name, "API error", status=response.status_code, body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                self.display_name, "malformed JSON", status=response.status_code, body=response.text,
            ) from e
