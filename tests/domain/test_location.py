from __future__ import annotations

import asyncio

import pytest

from doofpy.config import ConfigurationError
from doofpy.domain.errors import AreaNotFoundError, ExternalLookupError, InvalidPostalCodeError
from doofpy.domain.location import (
    LocationResolver,
    PostalCodeIndex,
    extract_postal_code,
    normalize_postal_code,
)
from doofpy.domain.model import UNRESOLVED_AREA, AdministrativeArea, ResolutionSource
from tests.support.catalog import NYC_AREAS, FakeRemoteAreaLookup

WILLIAMSBURG = AdministrativeArea(id=200, name="Williamsburg", postal_codes=())


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("10003", "10003"),
        ("  10003 ", "10003"),
        ("10003-1234", "10003"),
    ],
)
def test_normalize_postal_code(raw: str, expected: str) -> None:
    assert normalize_postal_code(raw) == expected


@pytest.mark.parametrize("raw", ["", "   "])
def test_blank_postal_code_is_an_input_error(raw: str) -> None:
    with pytest.raises(InvalidPostalCodeError):
        normalize_postal_code(raw)


def test_extract_postal_code_from_address() -> None:
    assert extract_postal_code("7 Carmine St, New York, NY 10014") == "10014"
    assert extract_postal_code("113 St Marks Pl, NY 10009-2201") == "10009"
    assert extract_postal_code("Suite 100123, Brooklyn") is None
    assert extract_postal_code("") is None


def test_index_keeps_lowest_area_id_for_shared_code(caplog: pytest.LogCaptureFixture) -> None:
    later = AdministrativeArea(id=147, name="Lower East Side", postal_codes=("10003",))
    earlier = AdministrativeArea(id=145, name="East Village", postal_codes=("10003",))

    index = PostalCodeIndex([later, earlier])

    area = index.get("10003")
    assert area is not None
    assert area.id == 145
    assert "10003" in caplog.text


def test_index_skips_unresolved_area() -> None:
    index = PostalCodeIndex([UNRESOLVED_AREA, *NYC_AREAS])

    assert index.find_by_name("Unresolved") is None
    assert index.find_by_name("east village") is not None
    assert "10014" in index
    assert len(index) == 4


def test_empty_index_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        LocationResolver(PostalCodeIndex([]))


def test_local_index_wins_over_remote() -> None:
    remote = FakeRemoteAreaLookup({"10003": WILLIAMSBURG})
    resolver = LocationResolver(PostalCodeIndex(NYC_AREAS), remote)

    resolution = asyncio.run(resolver.resolve("10003"))

    assert resolution.source is ResolutionSource.LOCAL
    assert resolution.area.name == "East Village"
    assert remote.calls == []


def test_remote_lookup_on_local_miss() -> None:
    remote = FakeRemoteAreaLookup({"11211": WILLIAMSBURG})
    index = PostalCodeIndex(NYC_AREAS)
    resolver = LocationResolver(index, remote)

    resolution = asyncio.run(resolver.resolve("11211-0001"))

    assert resolution.source is ResolutionSource.REMOTE
    assert resolution.area is WILLIAMSBURG
    assert remote.calls == ["11211"]
    assert "11211" not in index


def test_remote_miss_is_unresolved() -> None:
    resolver = LocationResolver(PostalCodeIndex(NYC_AREAS), FakeRemoteAreaLookup())

    resolution = asyncio.run(resolver.resolve("99999"))

    assert resolution.source is ResolutionSource.UNRESOLVED
    assert resolution.area is UNRESOLVED_AREA
    assert not resolution.resolved


def test_remote_timeout_is_unresolved() -> None:
    remote = FakeRemoteAreaLookup({"11211": WILLIAMSBURG}, delays={"11211": 1.0})
    resolver = LocationResolver(PostalCodeIndex(NYC_AREAS), remote, timeout_seconds=0.01)

    resolution = asyncio.run(resolver.resolve("11211"))

    assert resolution.source is ResolutionSource.UNRESOLVED
    assert remote.completed == []


def test_transient_remote_failure_is_unresolved() -> None:
    remote = FakeRemoteAreaLookup(failures={"11211": ExternalLookupError("HTTP 503")})
    resolver = LocationResolver(PostalCodeIndex(NYC_AREAS), remote)

    resolution = asyncio.run(resolver.resolve("11211"))

    assert resolution.source is ResolutionSource.UNRESOLVED


def test_unexpected_remote_failure_propagates() -> None:
    remote = FakeRemoteAreaLookup(failures={"11211": KeyError("boom")})
    resolver = LocationResolver(PostalCodeIndex(NYC_AREAS), remote)

    with pytest.raises(KeyError):
        asyncio.run(resolver.resolve("11211"))


def test_require_raises_for_unresolved_code() -> None:
    resolver = LocationResolver(PostalCodeIndex(NYC_AREAS))

    assert asyncio.run(resolver.require("10014")).name == "West Village"
    with pytest.raises(AreaNotFoundError):
        asyncio.run(resolver.require("99999"))
