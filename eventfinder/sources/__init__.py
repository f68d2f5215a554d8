"""Event provider sources."""

from typing import Dict, List, Optional, Type

import requests

from ..config import Settings
from .base import BaseSource
from .eventbrite import EventbriteSource
from .predicthq import PredictHQSource
from .rapidapi import RapidAPISource
from .ticketmaster import TicketmasterSource

__all__ = [
    "BaseSource",
    "EventbriteSource",
    "PredictHQSource",
    "RapidAPISource",
    "SOURCES",
    "TicketmasterSource",
    "build_sources",
]

# Registry of available sources: add new providers here.
SOURCES: Dict[str, Type[BaseSource]] = {
    "ticketmaster": TicketmasterSource,
    "eventbrite": EventbriteSource,
    "predicthq": PredictHQSource,
    "rapidapi": RapidAPISource,
}


def build_sources(settings: Settings, session: Optional[requests.Session] = None) -> List[BaseSource]:
    """Instantiate every registered source in priority order.

    Disabled sources (no credential) are included; callers filter on
    ``source.enabled``. Each source gets its own session unless one is
    passed in.
    """
    sources: List[BaseSource] = []
    for name in settings.priority:
        cls = SOURCES.get(name)
        if cls is None:
            continue
        credential = settings.credential_for(name)
        if cls is RapidAPISource:
            sources.append(RapidAPISource(
                credential, host=settings.rapidapi_host, timeout=settings.provider_timeout, session=session,
            ))
        else:
            sources.append(cls(credential, timeout=settings.provider_timeout, session=session))
    return sources
