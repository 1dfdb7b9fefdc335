"""Tests for event decoding."""

import json
from datetime import UTC, datetime

import pytest

from src.domain.exceptions import MalformedEventError
from src.services.event_decoder import decode_event
from tests.conftest import make_event_payload


def test_decode_full_event() -> None:
    event = decode_event(make_event_payload("evt-1"), "issues/evt-1.json")

    assert event.event_id == "evt-1"
    assert event.kind == "com.example.issue"
    assert event.occurred_at == datetime(2024, 5, 6, 1, 0, tzinfo=UTC)
    assert event.object_key == "issues/evt-1.json"
    assert event.data.job_id == 4567
    assert event.data.assignee == "이민규"
    assert event.data.status == "접수(Receipt)"
    assert event.data.done_ratio == 20
    assert event.data.due_date == datetime(2024, 5, 10, tzinfo=UTC)
    assert event.property_change is None


def test_missing_optional_fields_take_zero_values() -> None:
    event = decode_event(b'{"id": "evt-2", "type": "com.example.issue"}')

    assert event.occurred_at is None
    assert event.data.subject == ""
    assert event.data.notes == ""
    assert event.data.done_ratio == 0
    assert event.data.due_date is None
    assert event.object_key == ""


def test_unknown_fields_are_ignored() -> None:
    payload = json.loads(make_event_payload("evt-3"))
    payload["extension"] = {"nested": True}
    payload["data"]["custom_field"] = "whatever"

    event = decode_event(json.dumps(payload).encode())

    assert event.event_id == "evt-3"


def test_go_zero_time_decodes_as_missing() -> None:
    event = decode_event(
        make_event_payload(
            "evt-4", time="0001-01-01T00:00:00Z", due_date="0001-01-01T00:00:00Z"
        )
    )

    assert event.occurred_at is None
    assert event.data.due_date is None


def test_nested_property_change() -> None:
    event = decode_event(
        make_event_payload(
            "evt-5",
            property_change={"prop_key": "done_ratio", "old_value": "20", "value": 50},
        )
    )

    assert event.property_change is not None
    assert event.property_change.prop_key == "done_ratio"
    assert event.property_change.old_value == "20"
    assert event.property_change.value == "50"


def test_flat_journal_property_change() -> None:
    event = decode_event(
        make_event_payload(
            "evt-6",
            property="attr",
            prop_key="status_id",
            old_value="1",
            value="5",
        )
    )

    assert event.property_change is not None
    assert event.property_change.prop_key == "status_id"
    assert event.property_change.value == "5"


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"[1, 2, 3]",
        b'{"id": "evt", "data": {"done_ratio": 150}}',
        b'{"id": "evt", "data": {"job_id": "abc"}}',
        b'{"id": "evt", "time": "yesterday"}',
    ],
)
def test_malformed_payloads_raise(payload: bytes) -> None:
    with pytest.raises(MalformedEventError) as exc_info:
        decode_event(payload, "issues/bad.json")

    assert exc_info.value.object_key == "issues/bad.json"
    assert "issues/bad.json" in str(exc_info.value)


def test_decoded_event_is_immutable() -> None:
    event = decode_event(make_event_payload("evt-7"))

    with pytest.raises(Exception):
        event.event_id = "other"  # type: ignore[misc]
