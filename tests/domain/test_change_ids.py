from __future__ import annotations

import pytest

from doofpy.domain.errors import InvalidChangeIdError
from doofpy.domain.model import ChangeId, ChangeKind, EntityCategory, ProposedChange


def test_token_round_trip_keeps_separators_in_field() -> None:
    change_id = ChangeId(
        kind=ChangeKind.TRIM,
        category=EntityCategory.SUBMISSION,
        entity_id=42,
        field="meta:note",
    )

    assert change_id.token == "trim:submission:42:meta:note"
    assert ChangeId.parse(change_id.token) == change_id
    assert str(change_id) == change_id.token


@pytest.mark.parametrize(
    "token",
    [
        "phone_format:venue:7",
        "shout:venue:7:phone",
        "phone_format:restaurant:7:phone",
        "phone_format:venue:-7:phone",
        "phone_format:venue:seven:phone",
        "phone_format:venue:7:",
        "",
    ],
)
def test_malformed_tokens_are_rejected(token: str) -> None:
    with pytest.raises(InvalidChangeIdError):
        ChangeId.parse(token)


def test_non_string_token_is_rejected() -> None:
    with pytest.raises(InvalidChangeIdError):
        ChangeId.parse(7)  # type: ignore[arg-type]


@pytest.mark.parametrize("confidence", [-0.1, 1.01])
def test_confidence_must_be_within_unit_interval(confidence: float) -> None:
    change_id = ChangeId.parse("phone_format:venue:7:phone")

    with pytest.raises(ValueError, match="confidence"):
        ProposedChange(
            change_id=change_id,
            current_value="2125551234",
            proposed_value="(212) 555-1234",
            rationale="Canonical phone format",
            confidence=confidence,
        )
