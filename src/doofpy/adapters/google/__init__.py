"""Google Maps geocoding and place search adapter."""

from __future__ import annotations

from .client import GoogleMapsAPIError, GoogleMapsClient, GoogleMapsResponseError
from .lookup import GoogleAreaLookup, GooglePlaceLookup

__all__ = [
    "GoogleAreaLookup",
    "GoogleMapsAPIError",
    "GoogleMapsClient",
    "GoogleMapsResponseError",
    "GooglePlaceLookup",
]
