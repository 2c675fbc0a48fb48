"""Public domain model surface."""

from __future__ import annotations

from .area import UNRESOLVED_AREA, UNRESOLVED_AREA_ID, AdministrativeArea
from .changes import AnalysisReport, ChangeId, Diagnostic, ProposedChange
from .entity import CatalogEntity
from .enums import (
    ChangeKind,
    EntityCategory,
    LedgerAction,
    MatchConfidence,
    RecordStatus,
    ResolutionSource,
    category_from_text,
)
from .ledger import ChangeOutcome, ChangeResult, LedgerEntry, LedgerResult
from .records import (
    LocationResolution,
    MatchCandidate,
    MatchResult,
    PendingRecord,
    PlaceCandidate,
)

__all__ = [
    "UNRESOLVED_AREA",
    "UNRESOLVED_AREA_ID",
    "AdministrativeArea",
    "AnalysisReport",
    "CatalogEntity",
    "ChangeId",
    "ChangeKind",
    "ChangeOutcome",
    "ChangeResult",
    "Diagnostic",
    "EntityCategory",
    "LedgerAction",
    "LedgerEntry",
    "LedgerResult",
    "LocationResolution",
    "MatchCandidate",
    "MatchConfidence",
    "MatchResult",
    "PendingRecord",
    "PlaceCandidate",
    "ProposedChange",
    "RecordStatus",
    "ResolutionSource",
    "category_from_text",
]
