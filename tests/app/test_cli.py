from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from doofpy.app import CatalogReconciliationService
from doofpy.domain.model import EntityCategory
from doofpy.ui import cli
from tests.support.catalog import FakeCatalogStore, make_entity

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def _factory(
    store: FakeCatalogStore, calls: list[bool] | None = None
) -> Callable[..., CatalogReconciliationService]:
    def build(*, use_google: bool = True) -> CatalogReconciliationService:
        if calls is not None:
            calls.append(use_google)
        return CatalogReconciliationService(unit_of_work_factory=store.unit_of_work)

    return build


def _output(capsys: pytest.CaptureFixture[str]) -> Any:
    return json.loads(capsys.readouterr().out)


def test_analyze_then_apply(capsys: pytest.CaptureFixture[str]) -> None:
    store = FakeCatalogStore([make_entity(7, phone="2125551234")])
    factory = _factory(store)

    cli.main(["analyze", "venue"], service_factory=factory)
    report = _output(capsys)

    (change,) = report["changes"]
    assert change["id"] == "phone_format:venue:7:phone"
    assert change["proposed_value"] == "(212) 555-1234"

    cli.main(["apply", "venue", change["id"]], service_factory=factory)
    applied = _output(capsys)

    assert applied["applied_count"] == 1
    assert applied["results"] == [
        {"id": "phone_format:venue:7:phone", "outcome": "applied", "error": None}
    ]
    entity = store.catalog.get(EntityCategory.VENUE, 7)
    assert entity is not None
    assert entity.value("phone") == "(212) 555-1234"


def test_reject_reports_outcomes(capsys: pytest.CaptureFixture[str]) -> None:
    store = FakeCatalogStore([make_entity(7, phone="2125551234")])

    cli.main(
        ["reject", "venue", "phone_format:venue:7:phone", "phone_format:venue:8:phone"],
        service_factory=_factory(store),
    )
    result = _output(capsys)

    assert result["rejected_count"] == 1
    assert [item["outcome"] for item in result["results"]] == ["rejected", "unknown"]


def test_malformed_change_id_exits_with_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    store = FakeCatalogStore([make_entity(7, phone="2125551234")])

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["apply", "venue", "not-a-change-id"], service_factory=_factory(store))

    assert excinfo.value.code == 2
    assert capsys.readouterr().out == ""
    assert store.commits == 0


def test_unknown_category_is_rejected_by_argparse() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["analyze", "stadium"], service_factory=_factory(FakeCatalogStore()))

    assert excinfo.value.code == 2


def test_resolve_offline_skips_google(capsys: pytest.CaptureFixture[str]) -> None:
    calls: list[bool] = []

    cli.main(
        ["resolve", "10009", "--offline"], service_factory=_factory(FakeCatalogStore(), calls)
    )

    assert calls == [False]
    assert _output(capsys) == {
        "area_id": 145,
        "area": "East Village",
        "parent_id": 139,
        "source": "local",
    }


def test_ingest_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "batch.txt"
    path.write_text(
        "Joe's Pizza | restaurant | 7 Carmine St 10014\nKatz's | venue | 205 E Houston 10002\n",
        encoding="utf-8",
    )
    store = FakeCatalogStore([make_entity(1, name="Joe's Pizza", area_id=146)])
    calls: list[bool] = []

    cli.main(
        ["ingest", str(path), "--offline", "--concurrency", "2"],
        service_factory=_factory(store, calls),
    )
    result = _output(capsys)

    assert calls == [False]
    assert result["cancelled"] is False
    assert result["counts"] == {"unprocessed": 0, "resolved": 1, "duplicate": 1, "error": 0}
    records = result["records"]
    assert [record["status"] for record in records] == ["duplicate", "resolved"]
    assert records[1]["area"]["area"] == "Lower East Side"


def test_ingest_missing_file_exits_with_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            ["ingest", str(tmp_path / "missing.txt")],
            service_factory=_factory(FakeCatalogStore()),
        )

    assert excinfo.value.code == 2


def test_areas_import_builtin(capsys: pytest.CaptureFixture[str]) -> None:
    store = FakeCatalogStore(areas=())
    calls: list[bool] = []

    cli.main(["areas", "import", "--builtin"], service_factory=_factory(store, calls))
    result = _output(capsys)

    assert calls == [False]
    assert result["imported"] == len(store.areas.list_all())
    assert result["imported"] > 0


def test_unexpected_errors_exit_with_failure() -> None:
    def broken(**_: object) -> CatalogReconciliationService:
        raise RuntimeError("database is on fire")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["analyze", "venue"], service_factory=broken)

    assert excinfo.value.code == 1
