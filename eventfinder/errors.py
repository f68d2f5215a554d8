"""Exceptions raised by sources and the aggregator."""

from typing import Dict, Optional


class EventFinderError(Exception):
    """Base class for everything this package raises on purpose."""


class ProviderError(EventFinderError):
    """A single provider call failed: HTTP status, transport, or bad payload."""

    def __init__(self, provider: str, message: str, status: Optional[int] = None, body: str = ""):
        self.provider = provider
        self.status = status
        self.body = (body or "")[:200]
        detail = f"{provider}: {message}"
        if status is not None:
            detail += f" (HTTP {status})"
        if self.body:
            detail += f": {self.body}"
        super().__init__(detail)


class RateLimitExceeded(EventFinderError):
    """The provider's per-minute budget is used up."""

    def __init__(self, provider: str, reset_at: float):
        self.provider = provider
        self.reset_at = reset_at
        super().__init__(f"{provider}: rate limit exceeded")


class ConfigurationError(EventFinderError):
    """No usable provider configuration. Not retryable."""


class AggregationError(EventFinderError):
    """Every enabled provider failed for a search."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        summary = "; ".join(f"{name}: {msg}" for name, msg in self.errors.items())
        super().__init__(f"All event providers failed ({summary})")
