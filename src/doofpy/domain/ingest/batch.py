"""Batch Orchestrator: bounded-concurrency resolution and duplicate checks."""

from __future__ import annotations

import asyncio
import threading
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from doofpy.domain.errors import ExternalLookupError, MalformedBatchError
from doofpy.domain.location import extract_postal_code
from doofpy.domain.matching import ExistingItemMatcher
from doofpy.domain.model import (
    UNRESOLVED_AREA,
    LocationResolution,
    MatchCandidate,
    PendingRecord,
    RecordStatus,
    ResolutionSource,
    category_from_text,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from doofpy.domain.location import LocationResolver
    from doofpy.domain.model import CatalogEntity, EntityCategory
    from doofpy.domain.ports import PlaceLookup

log = getLogger(__name__)

type SnapshotLoader = Callable[[EntityCategory], Sequence[CatalogEntity]]

_UNRESOLVED = LocationResolution(area=UNRESOLVED_AREA, source=ResolutionSource.UNRESOLVED)


class BatchCancellation:
    """Cooperative stop signal; safe to trigger from another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True, slots=True)
class BatchResult:
    records: tuple[PendingRecord, ...]
    cancelled: bool = False

    def counts(self) -> dict[RecordStatus, int]:
        tally = Counter(record.status for record in self.records)
        return {status: tally.get(status, 0) for status in RecordStatus}


class BatchOrchestrator:
    """Drive pending records through location resolution and duplicate checks.

    Exactly ``concurrency`` workers pull from one queue. A record that fails is
    marked ``error`` and the rest of the batch carries on; results come back in
    submission order regardless of completion order.
    """

    def __init__(
        self,
        resolver: LocationResolver,
        snapshot_loader: SnapshotLoader,
        *,
        place_lookup: PlaceLookup | None = None,
        fuzzy_threshold: float = 0.6,
        lookup_timeout_seconds: float = 5.0,
    ) -> None:
        self._resolver = resolver
        self._snapshot_loader = snapshot_loader
        self._place_lookup = place_lookup
        self._threshold = fuzzy_threshold
        self._lookup_timeout = lookup_timeout_seconds

    async def process_batch(
        self,
        records: Sequence[PendingRecord],
        *,
        concurrency: int = 2,
        cancellation: BatchCancellation | None = None,
    ) -> BatchResult:
        batch = _validate(records, concurrency)
        matcher = self._matcher_for(batch)

        queue: asyncio.Queue[PendingRecord] = asyncio.Queue()
        for record in batch:
            queue.put_nowait(record)

        async def worker() -> None:
            while cancellation is None or not cancellation.cancelled:
                try:
                    record = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    await self._process(record, matcher)
                finally:
                    queue.task_done()

        async with asyncio.TaskGroup() as group:
            for _ in range(concurrency):
                group.create_task(worker())

        cancelled = any(record.status is RecordStatus.UNPROCESSED for record in batch)
        result = BatchResult(records=batch, cancelled=cancelled)
        log.info(
            "Processed batch of %d records%s: %s",
            len(batch),
            " (cancelled)" if cancelled else "",
            ", ".join(f"{status}={count}" for status, count in result.counts().items()),
        )
        return result

    def _matcher_for(self, batch: Sequence[PendingRecord]) -> ExistingItemMatcher:
        categories: set[EntityCategory] = set()
        for record in batch:
            category = record.category or category_from_text(record.category_text)
            if category is not None:
                categories.add(category)
        snapshot: list[CatalogEntity] = []
        for category in sorted(categories):
            snapshot.extend(self._snapshot_loader(category))
        return ExistingItemMatcher(snapshot, threshold=self._threshold)

    async def _process(self, record: PendingRecord, matcher: ExistingItemMatcher) -> None:
        try:
            await self._resolve_and_match(record, matcher)
        except Exception as exc:  # noqa: BLE001
            log.warning("Line %d (%s) failed: %s", record.line_number, record.name, exc)
            if record.status is RecordStatus.UNPROCESSED:
                record.mark_error(f"{type(exc).__name__}: {exc}")

    async def _resolve_and_match(
        self, record: PendingRecord, matcher: ExistingItemMatcher
    ) -> None:
        if record.parse_error is not None:
            record.mark_error(record.parse_error)
            return
        if record.duplicate_of_line is not None:
            record.mark_duplicate()
            return

        category = record.category or category_from_text(record.category_text)
        if category is None:
            record.mark_error(f"unknown category {record.category_text!r}")
            return
        record.category = category

        postal_code = extract_postal_code(record.location) or await self._postal_code_from_place(
            record
        )
        record.postal_code = postal_code
        if postal_code is None:
            record.resolution = _UNRESOLVED
        else:
            record.resolution = await self._resolver.resolve(postal_code)

        record.match = matcher.find_match(
            MatchCandidate(name=record.name, category=category, area_id=record.area_id)
        )
        if record.match.is_duplicate:
            record.mark_duplicate()
        else:
            record.mark_resolved()

    async def _postal_code_from_place(self, record: PendingRecord) -> str | None:
        if self._place_lookup is None:
            return None
        query = " ".join(part for part in (record.name, record.location) if part)
        try:
            async with asyncio.timeout(self._lookup_timeout):
                place = await self._place_lookup.find_place(query)
        except TimeoutError:
            log.warning("Place search for line %d timed out", record.line_number)
            return None
        except ExternalLookupError as exc:
            log.warning("Place search for line %d failed: %s", record.line_number, exc)
            return None
        if place is None or not place.postal_code:
            return None
        return extract_postal_code(place.postal_code) or place.postal_code


def _validate(records: object, concurrency: object) -> tuple[PendingRecord, ...]:
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise MalformedBatchError(f"concurrency must be a positive integer, got {concurrency!r}")
    if isinstance(records, str | bytes) or not isinstance(records, Sequence):
        raise MalformedBatchError("records must be a sequence of PendingRecord")

    seen: set[int] = set()
    batch: list[PendingRecord] = []
    for index, record in enumerate(records):
        if not isinstance(record, PendingRecord):
            raise MalformedBatchError(f"item {index} is not a PendingRecord")
        if record.line_number in seen:
            raise MalformedBatchError(f"duplicate line number {record.line_number}")
        if record.status is not RecordStatus.UNPROCESSED:
            raise MalformedBatchError(
                f"line {record.line_number} was already processed ({record.status})"
            )
        seen.add(record.line_number)
        batch.append(record)
    return tuple(batch)
