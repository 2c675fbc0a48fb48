from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import httpx
import pytest

from doofpy.adapters.google import GoogleMapsClient
from doofpy.adapters.http_resilience import ResilientClient
from doofpy.app import CatalogReconciliationService
from doofpy.config import ConfigurationError, ReconciliationConfig
from doofpy.config.google import GoogleMapsConfig
from doofpy.config.http_resilience import ResilienceConfig, RetryPolicy
from doofpy.domain.model import (
    AdministrativeArea,
    CatalogEntity,
    ChangeOutcome,
    EntityCategory,
    RecordStatus,
    ResolutionSource,
)
from tests.support.catalog import FakeCatalogStore, FakeRemoteAreaLookup

if TYPE_CHECKING:
    from collections.abc import Callable

    from doofpy.adapters.sqlalchemy.unit_of_work import SqlAlchemyCatalogUnitOfWork

    type UnitOfWorkFactory = Callable[[], SqlAlchemyCatalogUnitOfWork]


def _seed(factory: UnitOfWorkFactory, *entities: CatalogEntity) -> None:
    with factory() as uow:
        for entity in entities:
            uow.repositories.catalog.add(entity)  # type: ignore[attr-defined]
        uow.commit()


@pytest.mark.integration
def test_analyze_apply_reject_cycle(seeded_unit_of_work: UnitOfWorkFactory) -> None:
    _seed(
        seeded_unit_of_work,
        CatalogEntity(
            category=EntityCategory.VENUE,
            fields={"name": "Joe's Pizza", "phone": "2125551234", "website": "joespizzanyc.com"},
        ),
        CatalogEntity(
            category=EntityCategory.SUBMISSION,
            fields={"name": "Lucali", "status": "pending"},
            created_at=datetime.now(tz=UTC) - timedelta(days=45),
        ),
    )
    service = CatalogReconciliationService(unit_of_work_factory=seeded_unit_of_work)

    report = service.analyze_data_for_cleanup("venue")
    tokens = [change.change_id.token for change in report.changes]
    assert tokens == ["phone_format:venue:1:phone", "url_format:venue:1:website"]

    applied = service.apply_cleanup_changes("venue", [tokens[0]])
    rejected = service.reject_cleanup_changes("venue", [tokens[1]])
    assert applied.applied_count == 1
    assert rejected.rejected_count == 1

    again = service.analyze_data_for_cleanup(EntityCategory.VENUE)
    assert [change.change_id.token for change in again.changes] == [tokens[1]]

    (stale,) = service.analyze_data_for_cleanup("submission").changes
    assert stale.proposed_value == "archived"
    assert service.apply_cleanup_changes("submission", [stale.change_id.token]).applied_count == 1
    assert service.analyze_data_for_cleanup("submission").changes == ()

    with seeded_unit_of_work() as uow:
        history = uow.repositories.ledger.entries_for(tokens[0])
    assert [entry.action.value for entry in history] == ["applied"]


@pytest.mark.integration
def test_ingest_text_flags_existing_and_resolves_new(
    seeded_unit_of_work: UnitOfWorkFactory,
) -> None:
    _seed(
        seeded_unit_of_work,
        CatalogEntity(
            category=EntityCategory.VENUE, fields={"name": "Joe's Pizza", "area_id": 146}
        ),
    )
    remote = FakeRemoteAreaLookup({"11211": AdministrativeArea(id=200, name="Williamsburg")})
    service = CatalogReconciliationService(
        unit_of_work_factory=seeded_unit_of_work,
        config=ReconciliationConfig(batch_concurrency=3),
        remote_lookup=remote,
    )

    result = service.ingest_text(
        "joe's pizza | restaurant | 7 Carmine St, New York, NY 10014\n"
        "Peter Luger | restaurant | 178 Broadway, Brooklyn, NY 11211\n"
        "Russ & Daughters | venue | 179 E Houston St 10002\n"
        "nonsense\n"
    )

    assert [record.status for record in result.records] == [
        RecordStatus.DUPLICATE,
        RecordStatus.RESOLVED,
        RecordStatus.RESOLVED,
        RecordStatus.ERROR,
    ]
    assert [record.area_id for record in result.records[:3]] == [146, 200, 147]
    assert remote.calls == ["11211"]


def test_resolve_location_uses_stored_areas(fake_store: FakeCatalogStore) -> None:
    service = CatalogReconciliationService(unit_of_work_factory=fake_store.unit_of_work)

    local = service.resolve_location("10003-0001")
    missing = service.resolve_location("99999")

    assert local.source is ResolutionSource.LOCAL
    assert local.area.name == "East Village"
    assert missing.source is ResolutionSource.UNRESOLVED


def test_import_areas_refreshes_index(fake_store: FakeCatalogStore) -> None:
    service = CatalogReconciliationService(unit_of_work_factory=fake_store.unit_of_work)
    assert service.resolve_location("11211").source is ResolutionSource.UNRESOLVED

    williamsburg = AdministrativeArea(id=200, name="Williamsburg", postal_codes=("11211",))
    count = service.import_areas([williamsburg])

    assert count == 1
    assert service.resolve_location("11211").area.name == "Williamsburg"


def test_resolve_location_without_areas_is_a_configuration_error() -> None:
    store = FakeCatalogStore(areas=())
    service = CatalogReconciliationService(unit_of_work_factory=store.unit_of_work)

    with pytest.raises(ConfigurationError):
        service.resolve_location("10003")


def test_google_client_is_shared_within_one_batch(fake_store: FakeCatalogStore) -> None:
    geocode_calls: list[str] = []
    clients: list[GoogleMapsClient] = []

    def handler(request: httpx.Request) -> httpx.Response:
        geocode_calls.append(request.url.params["components"])
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [
                    {
                        "address_components": [
                            {
                                "long_name": "Lower East Side",
                                "short_name": "LES",
                                "types": ["neighborhood"],
                            }
                        ]
                    }
                ],
            },
        )

    def google_factory() -> GoogleMapsClient:
        config = GoogleMapsConfig(
            api_key="test-key",
            resilience=ResilienceConfig(
                name="google-maps-test",
                base_url="https://maps.test/maps/api/",
                retry=RetryPolicy(total=0),
                cache=None,
            ),
        )
        client = GoogleMapsClient(
            config=config,
            client_factory=lambda resilience: ResilientClient(
                resilience, transport=httpx.MockTransport(handler)
            ),
        )
        clients.append(client)
        return client

    service = CatalogReconciliationService(
        unit_of_work_factory=fake_store.unit_of_work,
        google_client_factory=google_factory,
    )

    result = service.ingest_text("Katz's | venue | 205 E Houston 10012\nScarr's | venue | 10013\n")

    assert len(clients) == 1
    assert [record.area_id for record in result.records] == [147, 147]
    assert len(geocode_calls) == 2


def test_apply_unknown_ids_reports_outcomes(fake_store: FakeCatalogStore) -> None:
    service = CatalogReconciliationService(unit_of_work_factory=fake_store.unit_of_work)

    result = service.apply_cleanup_changes("user", ["email_format:user:1:email"])

    assert result.applied_count == 0
    assert result.outcome_of("email_format:user:1:email") is ChangeOutcome.UNKNOWN
