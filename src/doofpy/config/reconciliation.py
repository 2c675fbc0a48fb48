"""Tunable thresholds for matching, analysis and batch ingestion."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int

DEFAULT_FUZZY_THRESHOLD = 0.6
DEFAULT_STALENESS_DAYS = 30
DEFAULT_BATCH_CONCURRENCY = 2
DEFAULT_GEOCODE_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    """Explicit knobs handed to each component at construction."""

    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    staleness_days: int = DEFAULT_STALENESS_DAYS
    batch_concurrency: int = DEFAULT_BATCH_CONCURRENCY
    geocode_timeout_seconds: float = DEFAULT_GEOCODE_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not 0.0 < self.fuzzy_threshold <= 1.0:
            raise ValueError("fuzzy_threshold must be within (0, 1]")
        if self.staleness_days < 1:
            raise ValueError("staleness_days must be positive")
        if self.batch_concurrency < 1:
            raise ValueError("batch_concurrency must be positive")
        if self.geocode_timeout_seconds <= 0:
            raise ValueError("geocode_timeout_seconds must be positive")


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        fuzzy_threshold=env_float(
            "DOOFPY_FUZZY_THRESHOLD", DEFAULT_FUZZY_THRESHOLD, minimum=0.01, maximum=1.0
        ),
        staleness_days=env_int("DOOFPY_STALENESS_DAYS", DEFAULT_STALENESS_DAYS, minimum=1),
        batch_concurrency=env_int(
            "DOOFPY_BATCH_CONCURRENCY", DEFAULT_BATCH_CONCURRENCY, minimum=1
        ),
        geocode_timeout_seconds=env_float(
            "DOOFPY_GEOCODE_TIMEOUT", DEFAULT_GEOCODE_TIMEOUT_SECONDS, minimum=0.1
        ),
    )
