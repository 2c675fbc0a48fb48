"""Catalog entities as read from (and written back to) the persistent store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .enums import EntityCategory


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class CatalogEntity:
    """A venue, menu item, user or submission.

    ``fields`` is replaced wholesale on every update so that change tracking in the
    persistence adapter sees a new value rather than an in-place mutation.
    """

    id: int | None = None
    category: EntityCategory
    fields: dict[str, Any] = field(default_factory=dict[str, Any])
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    def value(self, name: str) -> Any:
        return self.fields.get(name)

    def has_value(self, name: str) -> bool:
        value = self.fields.get(name)
        if value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        return True

    @property
    def last_modified(self) -> datetime:
        return self.updated_at or self.created_at

    @property
    def require_id(self) -> int:
        if self.id is None:
            raise ValueError("Catalog entity has not been persisted yet")
        return self.id

    def with_updates(self, updates: Mapping[str, Any], *, at: datetime | None = None) -> None:
        self.fields = {**self.fields, **updates}
        self.updated_at = at or utcnow()
