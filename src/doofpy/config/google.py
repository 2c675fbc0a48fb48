"""Google Maps (geocoding + places) configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import env_flag, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import get_storage_config

DEFAULT_GOOGLE_MAPS_BASE_URL = "https://maps.googleapis.com/maps/api"
DEFAULT_REGION = "us"
GOOGLE_MAPS_TIMEOUT_SECONDS = 10.0
GOOGLE_MAPS_MAX_IN_FLIGHT = 4
CACHEABLE_STATUSES = frozenset({"OK", "ZERO_RESULTS"})


@dataclass(frozen=True, slots=True)
class GoogleMapsConfig:
    api_key: str
    resilience: ResilienceConfig
    region: str = DEFAULT_REGION


def is_cacheable_payload(payload: object) -> bool:
    """Quota and auth errors arrive with HTTP 200; keep them out of the cache."""

    return isinstance(payload, dict) and payload.get("status") in CACHEABLE_STATUSES


def get_google_maps_config(*, resilience: ResilienceConfig | None = None) -> GoogleMapsConfig:
    values = require_env_vars(("GOOGLE_MAPS_API_KEY",))

    if resilience is None:
        cache = None
        if env_flag("GOOGLE_MAPS_CACHE", default=True):
            cache = CacheConfig(
                path=get_storage_config().geocode_cache, should_cache=is_cacheable_payload
            )
        resilience = ResilienceConfig(
            name="google-maps",
            base_url=os.getenv("GOOGLE_MAPS_BASE_URL") or DEFAULT_GOOGLE_MAPS_BASE_URL,
            timeout_seconds=GOOGLE_MAPS_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            max_in_flight=GOOGLE_MAPS_MAX_IN_FLIGHT,
            retry=RetryPolicy(total=2),
            cache=cache,
        )

    return GoogleMapsConfig(
        api_key=values["GOOGLE_MAPS_API_KEY"],
        resilience=resilience,
        region=os.getenv("GOOGLE_MAPS_REGION") or DEFAULT_REGION,
    )
