"""Bulk ingestion: raw text parsing and the batch orchestrator."""

from __future__ import annotations

from .batch import BatchCancellation, BatchOrchestrator, BatchResult
from .parsing import parse_pending_records

__all__ = [
    "BatchCancellation",
    "BatchOrchestrator",
    "BatchResult",
    "parse_pending_records",
]
