"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from doofpy.adapters.google import GoogleAreaLookup, GoogleMapsClient, GooglePlaceLookup
from doofpy.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    is_started,
    startup,
)
from doofpy.config import (
    ConfigurationError,
    ReconciliationConfig,
    get_google_maps_config,
    get_reconciliation_config,
)
from doofpy.domain.ingest import BatchOrchestrator, parse_pending_records
from doofpy.domain.ledger import ChangeLedger
from doofpy.domain.location import LocationResolver, PostalCodeIndex
from doofpy.domain.ports.unit_of_work import CatalogUnitOfWork
from doofpy.domain.quality import DataQualityAnalyzer

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from doofpy.domain.ingest import BatchCancellation, BatchResult
    from doofpy.domain.model import (
        AdministrativeArea,
        AnalysisReport,
        CatalogEntity,
        EntityCategory,
        LedgerResult,
        LocationResolution,
        PendingRecord,
    )
    from doofpy.domain.ports import PlaceLookup, RemoteAreaLookup

UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]
GoogleClientFactory = Callable[[], GoogleMapsClient]

log = getLogger(__name__)


def default_google_client_factory() -> GoogleMapsClient:
    return GoogleMapsClient(config=get_google_maps_config())


class CatalogReconciliationService:
    """The operations the admin panel calls, wired to storage and Google Maps.

    External lookups come either from ``google_client_factory`` (one client per
    operation, so a whole batch shares its rate limiter) or from the explicit
    ``remote_lookup`` / ``place_lookup`` ports.
    """

    def __init__(
        self,
        *,
        unit_of_work_factory: UnitOfWorkFactory,
        config: ReconciliationConfig | None = None,
        google_client_factory: GoogleClientFactory | None = None,
        remote_lookup: RemoteAreaLookup | None = None,
        place_lookup: PlaceLookup | None = None,
        analyzer: DataQualityAnalyzer | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._config = config or ReconciliationConfig()
        self._google_client_factory = google_client_factory
        self._remote_lookup = remote_lookup
        self._place_lookup = place_lookup
        self._analyzer = analyzer or DataQualityAnalyzer(
            staleness_days=self._config.staleness_days
        )
        self._ledger = ChangeLedger(unit_of_work_factory, self._analyzer)
        self._index: PostalCodeIndex | None = None

    @property
    def config(self) -> ReconciliationConfig:
        return self._config

    # Data quality -------------------------------------------------------------

    def analyze_data_for_cleanup(self, category: EntityCategory | str) -> AnalysisReport:
        with self._uow_factory() as uow:
            return self._analyzer.analyze(
                category, uow.repositories.catalog, uow.repositories.areas
            )

    def apply_cleanup_changes(
        self, category: EntityCategory | str, change_ids: Iterable[str]
    ) -> LedgerResult:
        return self._ledger.apply(category, change_ids)

    def reject_cleanup_changes(
        self, category: EntityCategory | str, change_ids: Iterable[str]
    ) -> LedgerResult:
        return self._ledger.reject(category, change_ids)

    # Location -----------------------------------------------------------------

    def resolve_location(self, postal_code: str) -> LocationResolution:
        return asyncio.run(self.resolve_location_async(postal_code))

    async def resolve_location_async(self, postal_code: str) -> LocationResolution:
        index = self.postal_code_index()
        async with self._lookups(index) as (remote, _places):
            resolver = LocationResolver(
                index, remote, timeout_seconds=self._config.geocode_timeout_seconds
            )
            return await resolver.resolve(postal_code)

    def postal_code_index(self) -> PostalCodeIndex:
        if self._index is None:
            with self._uow_factory() as uow:
                areas = uow.repositories.areas.list_all()
            self._index = PostalCodeIndex(areas)
            log.info("Loaded %d postal codes from %d areas", len(self._index), len(areas))
        return self._index

    def import_areas(self, areas: Iterable[AdministrativeArea]) -> int:
        count = 0
        with self._uow_factory() as uow:
            for area in areas:
                uow.repositories.areas.add(area)
                count += 1
            uow.commit()
        self._index = None
        log.info("Imported %d administrative areas", count)
        return count

    # Bulk ingestion -----------------------------------------------------------

    def process_batch(
        self,
        records: Sequence[PendingRecord],
        concurrency: int | None = None,
        *,
        cancellation: BatchCancellation | None = None,
    ) -> BatchResult:
        return asyncio.run(
            self.process_batch_async(records, concurrency, cancellation=cancellation)
        )

    async def process_batch_async(
        self,
        records: Sequence[PendingRecord],
        concurrency: int | None = None,
        *,
        cancellation: BatchCancellation | None = None,
    ) -> BatchResult:
        index = self.postal_code_index()
        async with self._lookups(index) as (remote, places):
            orchestrator = BatchOrchestrator(
                LocationResolver(
                    index, remote, timeout_seconds=self._config.geocode_timeout_seconds
                ),
                self._load_snapshot,
                place_lookup=places,
                fuzzy_threshold=self._config.fuzzy_threshold,
                lookup_timeout_seconds=self._config.geocode_timeout_seconds,
            )
            return await orchestrator.process_batch(
                records,
                concurrency=self._config.batch_concurrency if concurrency is None else concurrency,
                cancellation=cancellation,
            )

    def ingest_text(
        self,
        raw_text: str,
        concurrency: int | None = None,
        *,
        cancellation: BatchCancellation | None = None,
    ) -> BatchResult:
        records = parse_pending_records(raw_text)
        return self.process_batch(records, concurrency, cancellation=cancellation)

    def _load_snapshot(self, category: EntityCategory) -> Sequence[CatalogEntity]:
        with self._uow_factory() as uow:
            return uow.repositories.catalog.list_by_category(category)

    @asynccontextmanager
    async def _lookups(
        self, index: PostalCodeIndex
    ) -> AsyncIterator[tuple[RemoteAreaLookup | None, PlaceLookup | None]]:
        if self._google_client_factory is None:
            yield self._remote_lookup, self._place_lookup
            return
        async with self._google_client_factory() as client:
            yield (
                self._remote_lookup or GoogleAreaLookup(client, index.find_by_name),
                self._place_lookup or GooglePlaceLookup(client),
            )


def build_service(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    use_google: bool = True,
) -> CatalogReconciliationService:
    """Wire the service from environment configuration."""

    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyCatalogUnitOfWork

    google_factory: GoogleClientFactory | None = None
    if use_google:
        try:
            get_google_maps_config()
        except ConfigurationError as exc:
            log.warning("Remote lookups disabled: %s", exc)
        else:
            google_factory = default_google_client_factory

    return CatalogReconciliationService(
        unit_of_work_factory=unit_of_work_factory,
        config=get_reconciliation_config(),
        google_client_factory=google_factory,
    )
