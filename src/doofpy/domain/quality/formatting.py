"""Canonical formatters for stored catalog values.

Every formatter returns ``None`` when a value cannot be canonicalized; callers treat
that as "no proposal" rather than an error.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from urllib.parse import urlsplit, urlunsplit

_NON_DIGITS = re.compile(r"\D")
_MONEY_NOISE = re.compile(r"[\s,$€£¥]|USD", re.IGNORECASE)
_WORD_START = re.compile(r"(^|[\s\-])(\w)")
_CENTS = Decimal("0.01")
US_PHONE_DIGITS = 10
TRUNCATION_MARKER = "..."


def format_phone(value: object) -> str | None:
    """Render US phone numbers as ``(NNN) NNN-NNNN``."""

    if isinstance(value, bool) or not isinstance(value, str | int):
        return None
    digits = _NON_DIGITS.sub("", str(value))
    if len(digits) == US_PHONE_DIGITS + 1 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != US_PHONE_DIGITS:
        return None
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def format_url(value: object) -> str | None:
    """Add an ``https://`` scheme when missing and lowercase scheme and host."""

    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or any(ch.isspace() for ch in text):
        return None
    if not re.match(r"^https?://", text, re.IGNORECASE):
        if "://" in text:
            return None
        text = f"https://{text}"
    parts = urlsplit(text)
    host = parts.hostname
    if not host or "." not in host:
        return None
    netloc = parts.netloc.rsplit("@", 1)
    netloc[-1] = netloc[-1].lower()
    return urlunsplit(
        (parts.scheme.lower(), "@".join(netloc), parts.path, parts.query, parts.fragment)
    )


def format_money(value: object) -> str | None:
    """Two-decimal string with currency symbols and thousands separators removed."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int | float | Decimal):
        text = str(value)
    elif isinstance(value, str):
        text = _MONEY_NOISE.sub("", value)
    else:
        return None
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def format_email(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip().lower()
    local, sep, domain = text.partition("@")
    if not sep or not local or not domain or "@" in domain:
        return None
    if any(ch.isspace() for ch in text):
        return None
    return text


def title_case(value: str) -> str:
    """Capitalize each word, leaving anything that looks like an email address alone."""

    if "@" in value:
        return value
    return _WORD_START.sub(lambda found: found.group(1) + found.group(2).upper(), value.lower())


def needs_title_case(value: str) -> bool:
    """Only names written entirely in one case are considered sloppy."""

    letters = [ch for ch in value if ch.isalpha()]
    if not letters or "@" in value:
        return False
    return all(ch.islower() for ch in letters) or all(ch.isupper() for ch in letters)


def truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
