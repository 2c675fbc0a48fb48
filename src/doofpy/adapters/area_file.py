"""Load administrative areas from JSON seed files."""

from __future__ import annotations

from importlib import resources
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from doofpy.domain.model import AdministrativeArea

if TYPE_CHECKING:
    from pathlib import Path

BUILTIN_AREAS = "nyc_areas.json"


class AreaFileError(ValueError):
    """Raised when an area seed file cannot be parsed."""


class AreaRecord(BaseModel):
    id: int = Field(gt=0)
    name: str = Field(min_length=1)
    parent_id: int | None = None
    postal_codes: list[str] = Field(default_factory=list, alias="zipcode_ranges")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @field_validator("postal_codes", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if isinstance(value, list):
            return [str(item).strip() for item in value]
        return value

    def to_domain(self) -> AdministrativeArea:
        return AdministrativeArea(
            id=self.id,
            name=self.name.strip(),
            parent_id=self.parent_id,
            postal_codes=tuple(code for code in self.postal_codes if code),
        )


_AREA_LIST = TypeAdapter(list[AreaRecord])


def parse_areas(payload: str | bytes) -> list[AdministrativeArea]:
    try:
        records = _AREA_LIST.validate_json(payload)
    except ValidationError as exc:
        raise AreaFileError(f"Invalid area file: {exc}") from exc
    return [record.to_domain() for record in records]


def load_areas(path: Path) -> list[AdministrativeArea]:
    return parse_areas(path.read_bytes())


def load_builtin_areas() -> list[AdministrativeArea]:
    """Return the bundled New York City neighborhoods."""

    payload = resources.files("doofpy.data").joinpath(BUILTIN_AREAS).read_bytes()
    return parse_areas(payload)
