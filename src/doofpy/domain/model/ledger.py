"""Append-only record of approved, rejected and failed changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from .enums import EntityCategory, LedgerAction


@dataclass(eq=False, kw_only=True)
class LedgerEntry:
    id: int | None = None
    change_id: str
    category: EntityCategory
    entity_id: int
    field: str
    action: LedgerAction
    snapshot: dict[str, Any] = field(default_factory=dict[str, Any])
    error: str | None = None
    recorded_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class ChangeOutcome(StrEnum):
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"
    ALREADY_REJECTED = "already_rejected"
    UNKNOWN = "unknown"
    STALE = "stale"
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self in _SUCCESS


_SUCCESS = frozenset(
    {
        ChangeOutcome.APPLIED,
        ChangeOutcome.ALREADY_APPLIED,
        ChangeOutcome.REJECTED,
        ChangeOutcome.ALREADY_REJECTED,
    }
)


@dataclass(frozen=True, slots=True)
class ChangeResult:
    change_id: str
    outcome: ChangeOutcome
    error: str | None = None


@dataclass(frozen=True, slots=True)
class LedgerResult:
    category: EntityCategory
    results: tuple[ChangeResult, ...] = ()

    @property
    def applied_count(self) -> int:
        return self._count(ChangeOutcome.APPLIED, ChangeOutcome.ALREADY_APPLIED)

    @property
    def rejected_count(self) -> int:
        return self._count(ChangeOutcome.REJECTED, ChangeOutcome.ALREADY_REJECTED)

    @property
    def failed_count(self) -> int:
        return self._count(ChangeOutcome.FAILED)

    def outcome_of(self, change_id: str) -> ChangeOutcome | None:
        for result in self.results:
            if result.change_id == change_id:
                return result.outcome
        return None

    def _count(self, *outcomes: ChangeOutcome) -> int:
        return sum(1 for result in self.results if result.outcome in outcomes)
