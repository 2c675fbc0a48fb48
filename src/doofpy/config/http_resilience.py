"""Settings for the outbound HTTP client behind the Google Maps adapter."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from httpx_retries import Retry

if TYPE_CHECKING:
    from pathlib import Path

type CachePredicate = Callable[[object], bool]

RETRYABLE_HTTP_STATUSES = frozenset({429, 500, 502, 503, 504})
DEFAULT_USER_AGENT = "doofpy (catalog reconciliation)"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retries.

    Only HTTP failures are retried here. Google reports quota and auth problems as
    ``200 OK`` with an error status in the body; those surface as lookup misses.
    """

    total: int = 2
    backoff_factor: float = 0.5
    max_backoff_wait: float = 10.0
    retry_statuses: frozenset[int] = RETRYABLE_HTTP_STATUSES

    def build(self) -> Retry:
        return Retry(
            total=self.total,
            backoff_factor=self.backoff_factor,
            max_backoff_wait=self.max_backoff_wait,
            allowed_methods=("GET",),
            status_forcelist=sorted(self.retry_statuses),
            respect_retry_after_header=True,
        )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Response cache; ``path=None`` keeps it in memory for the client's lifetime."""

    path: Path | None = None
    ttl_seconds: float | None = 24 * 60 * 60
    should_cache: CachePredicate | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    max_in_flight: int | None = None
    cache: CacheConfig | None = field(default_factory=CacheConfig)
    user_agent: str = DEFAULT_USER_AGENT
