"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from typing import Any

import pytest

from src.domain.exceptions import ArchiveError, DeliveryError, StoreUnavailableError
from src.domain.models import Event, StoredObject
from src.services.event_decoder import decode_event


def make_event_payload(
    event_id: str = "evt-001",
    *,
    time: str | None = "2024-05-06T01:00:00Z",
    event_type: str = "com.example.issue",
    status: str = "접수(Receipt)",
    **data: Any,
) -> bytes:
    """Build a producer-style event JSON payload."""
    body: dict[str, Any] = {
        "id": 123,
        "job_id": 4567,
        "login": "mklee",
        "status": status,
        "status_id": 1,
        "assignee": "이민규",
        "due_date": "2024-05-10T00:00:00Z",
        "done_ratio": 20,
        "priority": "High",
        "author": "tester",
        "email": "someone@example.com",
        "subject": "Fix login page",
        "description": "Login button does nothing",
        "notes": "",
        "created_on": "2024-05-01T09:00:00+09:00",
    }
    body.update(data)
    envelope: dict[str, Any] = {
        "specversion": "1.0",
        "id": event_id,
        "source": "tracker",
        "type": event_type,
        "datacontenttype": "application/json",
        "data": body,
    }
    if time is not None:
        envelope["time"] = time
    return json.dumps(envelope, ensure_ascii=False).encode("utf-8")


def make_event(event_id: str = "evt-001", object_key: str = "", **kwargs: Any) -> Event:
    return decode_event(make_event_payload(event_id, **kwargs), object_key)


class FakeObjectStore:
    """In-memory object store keeping insertion order as listing order."""

    bucket = "issue-events-test"

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.moves: list[tuple[str, str]] = []
        self.fail_list = False
        self.fail_get: set[str] = set()
        self.fail_move: set[str] = set()

    def put(self, key: str, payload: bytes) -> None:
        self.objects[key] = payload

    def list_objects(self, prefix: str) -> list[StoredObject]:
        if self.fail_list:
            raise StoreUnavailableError("listing failed")
        return [
            StoredObject(key=key, size=len(payload))
            for key, payload in self.objects.items()
            if key.startswith(prefix)
        ]

    def get_object(self, key: str) -> bytes:
        if key in self.fail_get:
            raise StoreUnavailableError(f"get failed for {key}")
        return self.objects[key]

    def copy_object(self, src_key: str, dst_key: str) -> None:
        self.objects[dst_key] = self.objects[src_key]

    def delete_object(self, key: str) -> None:
        del self.objects[key]

    def move_object(self, src_key: str, dst_key: str) -> None:
        if src_key in self.fail_move:
            raise ArchiveError(f"move failed for {src_key}")
        self.copy_object(src_key, dst_key)
        self.delete_object(src_key)
        self.moves.append((src_key, dst_key))


class RecordingNotifier:
    """Notifier double recording every delivered message."""

    def __init__(self, fail_times: int = 0) -> None:
        self.sent: list[tuple[list[dict[str, Any]], str]] = []
        self._fail_times = fail_times

    def notify(self, blocks: list[dict[str, Any]], text: str = "") -> str:
        if self._fail_times > 0:
            self._fail_times -= 1
            raise DeliveryError("channel_not_found", status_code=200, body="{'ok': False}")
        self.sent.append((blocks, text))
        return f"1700000000.{len(self.sent):06d}"


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
