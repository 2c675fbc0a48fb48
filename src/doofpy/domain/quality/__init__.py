"""Data-quality analysis over stored catalog entities."""

from __future__ import annotations

from .analyzer import DataQualityAnalyzer, coerce_category
from .detectors import (
    DEFAULT_DETECTORS,
    CanonicalFormatDetector,
    DetectionContext,
    Detector,
    MissingDerivedFieldDetector,
    StalenessDetector,
    TextHygieneDetector,
    ZipLookupDetector,
)
from .profiles import DEFAULT_PROFILES, CategoryProfile, TextRule

__all__ = [
    "DEFAULT_DETECTORS",
    "DEFAULT_PROFILES",
    "CanonicalFormatDetector",
    "CategoryProfile",
    "DataQualityAnalyzer",
    "DetectionContext",
    "Detector",
    "MissingDerivedFieldDetector",
    "StalenessDetector",
    "TextHygieneDetector",
    "TextRule",
    "ZipLookupDetector",
    "coerce_category",
]
