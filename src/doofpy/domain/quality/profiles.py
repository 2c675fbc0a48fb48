"""Per-category configuration of the data-quality detectors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from doofpy.domain.model import ChangeKind, EntityCategory

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class TextRule:
    field: str
    trim: bool = True
    title_case: bool = False
    max_length: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CategoryProfile:
    category: EntityCategory
    postal_code_field: str | None = None
    derived_fields: tuple[str, ...] = ()
    # filled from the administrative area owning the postal code
    area_id_field: str | None = None
    formatted_fields: tuple[tuple[str, ChangeKind], ...] = ()
    status_field: str | None = None
    pending_states: frozenset[str] = frozenset()
    archived_state: str = "archived"
    text_rules: tuple[TextRule, ...] = ()
    # only entities whose status is in this set are analyzed at all
    scope_states: frozenset[str] | None = None

    def __post_init__(self) -> None:
        formatted = {name for name, _ in self.formatted_fields}
        overlap = formatted & {rule.field for rule in self.text_rules}
        if overlap:
            raise ValueError(f"Fields {sorted(overlap)} are both formatted and text-cleaned")

    def in_scope(self, status: object) -> bool:
        if self.scope_states is None or self.status_field is None:
            return True
        return isinstance(status, str) and status in self.scope_states


PENDING_STATES: Final[frozenset[str]] = frozenset({"pending", "needs_review"})

DEFAULT_PROFILES: Final[Mapping[EntityCategory, CategoryProfile]] = {
    EntityCategory.VENUE: CategoryProfile(
        category=EntityCategory.VENUE,
        postal_code_field="postal_code",
        derived_fields=("area", "area_id", "city"),
        area_id_field="area_id",
        formatted_fields=(
            ("phone", ChangeKind.PHONE_FORMAT),
            ("website", ChangeKind.URL_FORMAT),
        ),
        text_rules=(
            TextRule("name", title_case=True),
            TextRule("cuisine", title_case=True),
            TextRule("description", trim=False, max_length=500),
        ),
    ),
    EntityCategory.MENU_ITEM: CategoryProfile(
        category=EntityCategory.MENU_ITEM,
        formatted_fields=(("price", ChangeKind.MONEY_FORMAT),),
        text_rules=(
            TextRule("name", title_case=True),
            TextRule("description", trim=False, max_length=500),
        ),
    ),
    EntityCategory.USER: CategoryProfile(
        category=EntityCategory.USER,
        formatted_fields=(("email", ChangeKind.EMAIL_FORMAT),),
        text_rules=(TextRule("name", title_case=True),),
    ),
    EntityCategory.SUBMISSION: CategoryProfile(
        category=EntityCategory.SUBMISSION,
        postal_code_field="postal_code",
        derived_fields=("city", "neighborhood"),
        formatted_fields=(
            ("phone", ChangeKind.PHONE_FORMAT),
            ("website", ChangeKind.URL_FORMAT),
        ),
        status_field="status",
        pending_states=PENDING_STATES,
        scope_states=PENDING_STATES,
        text_rules=(
            TextRule("name", title_case=True),
            TextRule("location"),
            TextRule("city", title_case=True),
            TextRule("neighborhood", title_case=True),
            TextRule("restaurant_name", title_case=True),
            TextRule("description", trim=False, max_length=500),
        ),
    ),
}
