from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from doofpy.adapters.area_file import AreaFileError, load_areas, load_builtin_areas, parse_areas
from doofpy.domain.location import PostalCodeIndex

if TYPE_CHECKING:
    from pathlib import Path


def test_parse_areas_accepts_legacy_zipcode_ranges() -> None:
    areas = parse_areas(
        '[{"id": 145, "name": " East Village ", "parent_id": 139,'
        ' "zipcode_ranges": [10003, "10009", ""]}]'
    )

    (area,) = areas
    assert area.id == 145
    assert area.name == "East Village"
    assert area.parent_id == 139
    assert area.postal_codes == ("10003", "10009")


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        '{"id": 1, "name": "x"}',
        '[{"id": 0, "name": "Nowhere"}]',
        '[{"id": 5, "name": ""}]',
        '[{"id": 5, "name": "Soho", "borough": "Manhattan"}]',
    ],
)
def test_parse_areas_rejects_invalid_files(payload: str) -> None:
    with pytest.raises(AreaFileError):
        parse_areas(payload)


def test_load_areas_from_file(tmp_path: Path) -> None:
    path = tmp_path / "areas.json"
    path.write_text('[{"id": 7, "name": "Astoria", "postal_codes": ["11102"]}]', encoding="utf-8")

    (area,) = load_areas(path)

    assert area.name == "Astoria"
    assert area.postal_codes == ("11102",)


def test_builtin_areas_build_an_index() -> None:
    areas = load_builtin_areas()
    index = PostalCodeIndex(areas)

    assert {area.name for area in areas} >= {"East Village", "West Village", "Tribeca"}
    east_village = index.get("10003")
    assert east_village is not None
    assert east_village.name == "East Village"
    assert east_village.parent_id == 139
