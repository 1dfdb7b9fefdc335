"""Event decoding service.

Turns a raw object payload (CloudEvents-style JSON written by the issue
tracker) into a typed ``Event``.
"""

from pydantic import ValidationError

from src.domain.exceptions import MalformedEventError
from src.domain.models import Event


def decode_event(payload: bytes | str, object_key: str = "") -> Event:
    """Decode a stored object into an event.

    Unknown fields are ignored and missing optional fields take their zero
    value. The storage key is attached to the event for archival.

    Args:
        payload: Raw JSON payload
        object_key: Storage key the payload was read from

    Returns:
        Decoded event

    Raises:
        MalformedEventError: If the payload is not valid JSON or does not
            match the event schema

    Example:
        >>> event = decode_event(b'{"id": "e1", "type": "com.example.issue"}', "issues/e1.json")
        >>> event.kind
        'com.example.issue'
    """
    try:
        event = Event.model_validate_json(payload)
    except ValidationError as e:
        first = e.errors()[0] if e.error_count() else {}
        location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
        raise MalformedEventError(
            f"Malformed event {object_key or '<payload>'}: "
            f"{location}: {first.get('msg', str(e))}",
            object_key=object_key,
        ) from e

    return event.model_copy(update={"object_key": object_key})
