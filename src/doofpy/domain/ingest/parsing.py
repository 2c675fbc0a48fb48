"""Parse operator-pasted bulk text into pending records.

One record per non-blank line; fields are separated by ``|`` when the line contains
one, otherwise by ``;``::

    Joe's Pizza | restaurant | 7 Carmine St, New York, NY 10014 | pizza, slice
    Cacio e Pepe; dish; Via Carota; pasta

Problems with individual lines never abort parsing. They are attached to the record
and surface as ``error`` outcomes when the batch runs.
"""

from __future__ import annotations

from logging import getLogger

from doofpy.domain.location import extract_postal_code
from doofpy.domain.matching import normalize_name
from doofpy.domain.model import EntityCategory, PendingRecord, category_from_text

log = getLogger(__name__)

PRIMARY_DELIMITER = "|"
FALLBACK_DELIMITER = ";"
TAG_DELIMITER = ","
MIN_FIELDS = 2


def split_line(line: str) -> list[str]:
    delimiter = PRIMARY_DELIMITER if PRIMARY_DELIMITER in line else FALLBACK_DELIMITER
    return [part.strip() for part in line.split(delimiter)]


def parse_tags(text: str) -> tuple[str, ...]:
    return tuple(tag.strip() for tag in text.split(TAG_DELIMITER) if tag.strip())


def location_key(location: str) -> str:
    """Postal code when one can be read from ``location``, else its normalized text.

    Chain branches share a name, so an earlier line only shadows a later one at the
    same place.
    """

    return extract_postal_code(location) or normalize_name(location)


def parse_pending_records(text: str) -> list[PendingRecord]:
    records: list[PendingRecord] = []
    seen: dict[tuple[str, EntityCategory, str], int] = {}

    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        record = _parse_line(line_number, line)
        if record.category is not None and record.parse_error is None:
            key = (normalize_name(record.name), record.category, location_key(record.location))
            earlier = seen.get(key)
            if earlier is None:
                seen[key] = line_number
            else:
                record.duplicate_of_line = earlier
        records.append(record)

    log.info("Parsed %d pending records", len(records))
    return records


def _parse_line(line_number: int, line: str) -> PendingRecord:
    fields = split_line(line)
    padded = [*fields, "", "", ""]
    name, category_text, location, tags = padded[:4]
    record = PendingRecord(
        line_number=line_number,
        name=name,
        category_text=category_text,
        location=location,
        tags=parse_tags(tags),
    )
    if len(fields) < MIN_FIELDS or not name:
        record.parse_error = "expected at least 'name; category'"
        return record
    category = category_from_text(category_text)
    if category is None:
        record.parse_error = f"unknown category {category_text!r}"
        return record
    record.category = category
    return record
