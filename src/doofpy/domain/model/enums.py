"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityCategory(StrEnum):
    VENUE = "venue"
    MENU_ITEM = "menu_item"
    USER = "user"
    SUBMISSION = "submission"


class RecordStatus(StrEnum):
    """Lifecycle of one pending bulk-ingestion record."""

    UNPROCESSED = "unprocessed"
    RESOLVED = "resolved"
    DUPLICATE = "duplicate"
    ERROR = "error"


class MatchConfidence(StrEnum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    NONE = "none"


class ResolutionSource(StrEnum):
    LOCAL = "local"
    REMOTE = "remote"
    UNRESOLVED = "unresolved"


class ChangeKind(StrEnum):
    """Tag carried by every proposed change; one per detector rule."""

    MISSING_DERIVED = "missing_derived"
    ZIP_LOOKUP = "zip_lookup"
    PHONE_FORMAT = "phone_format"
    URL_FORMAT = "url_format"
    MONEY_FORMAT = "money_format"
    EMAIL_FORMAT = "email_format"
    STALE_ARCHIVE = "stale_archive"
    TRIM = "trim"
    TITLE_CASE = "title_case"
    TRUNCATE = "truncate"


class LedgerAction(StrEnum):
    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"


CATEGORY_ALIASES: dict[str, EntityCategory] = {
    "restaurant": EntityCategory.VENUE,
    "restaurants": EntityCategory.VENUE,
    "venues": EntityCategory.VENUE,
    "dish": EntityCategory.MENU_ITEM,
    "dishes": EntityCategory.MENU_ITEM,
    "menu-item": EntityCategory.MENU_ITEM,
    "users": EntityCategory.USER,
    "submissions": EntityCategory.SUBMISSION,
}


def category_from_text(value: str) -> EntityCategory | None:
    """Map operator free text (``restaurant``, ``Dish``...) onto a category."""

    key = value.strip().casefold()
    if not key:
        return None
    try:
        return EntityCategory(key)
    except ValueError:
        return CATEGORY_ALIASES.get(key)
