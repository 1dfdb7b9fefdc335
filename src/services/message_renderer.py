"""Slack message rendering for issue events.

Pure functions only: the same event always renders to the same blocks.
"""

from datetime import datetime
from typing import Any

from src.domain.models import Event, PropertyDelta
from src.domain.notification_constants import (
    DATE_FORMAT,
    DESCRIPTION_LABEL,
    DONE_RATIO_KEY,
    DONE_RATIO_MAX,
    HEADER_EMOJI,
    MISSING_DATE,
    NOTES_LABEL,
    NOTES_MARKERS,
    PROGRESS_BAR_SEGMENTS,
    PROPERTY_NAMES,
    SEGMENT_ADDED,
    SEGMENT_EMPTY,
    SEGMENT_FILLED,
    SEGMENT_REMOVED,
    STATUS_ID_KEY,
    STATUS_NAMES,
    SUBJECT_LABEL,
)


def normalize_notes(notes: str) -> str:
    """Turn the tracker's asterisk markers into indented bullets.

    Example:
        >>> normalize_notes("***a\\n**b")
        '    -a\\n  -b'
    """
    for marker, bullet in NOTES_MARKERS:
        notes = notes.replace(marker, bullet)
    return notes


def get_property_name(prop_key: str) -> str:
    """Translate a property key to its display name (raw key if unknown)."""
    return PROPERTY_NAMES.get(prop_key, prop_key)


def get_status_name(status_id: int | str) -> str:
    """Translate a status code to its label (raw numeral if unknown)."""
    try:
        code = int(status_id)
    except (TypeError, ValueError):
        return str(status_id)
    return STATUS_NAMES.get(code, str(code))


def _segments(ratio: int) -> int:
    return (ratio * PROGRESS_BAR_SEGMENTS) // DONE_RATIO_MAX


def progress_bar_with_increase(old_ratio: int, new_ratio: int) -> str:
    """Render a bar where the gained share is highlighted.

    Example:
        >>> progress_bar_with_increase(20, 50)
        '⬛⬛🟩🟩🟩⬜⬜⬜⬜⬜'
    """
    old_blocks = _segments(old_ratio)
    new_blocks = _segments(new_ratio)

    segments: list[str] = []
    for i in range(PROGRESS_BAR_SEGMENTS):
        if i < old_blocks:
            segments.append(SEGMENT_FILLED)
        elif i < new_blocks:
            segments.append(SEGMENT_ADDED)
        else:
            segments.append(SEGMENT_EMPTY)
    return "".join(segments)


def progress_bar_with_decrease(new_ratio: int) -> str:
    """Render a bar where everything past the current ratio is marked removed.

    Example:
        >>> progress_bar_with_decrease(40)
        '⬛⬛⬛⬛🟥🟥🟥🟥🟥🟥'
    """
    new_blocks = _segments(new_ratio)
    return "".join(
        SEGMENT_FILLED if i < new_blocks else SEGMENT_REMOVED
        for i in range(PROGRESS_BAR_SEGMENTS)
    )


def _parse_int(value: str) -> int:
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return 0


def format_property_change(prop_key: str, old_value: str, new_value: str) -> str:
    """Render a single property transition as mrkdwn.

    Args:
        prop_key: Tracker property key (e.g. ``done_ratio``)
        old_value: Value before the change
        new_value: Value after the change

    Returns:
        mrkdwn text for a section block

    Example:
        >>> format_property_change("done_ratio", "20", "50")
        '*완료율:* \\n⬛⬛🟩🟩🟩⬜⬜⬜⬜⬜ :: +30%'
    """
    prop_name = get_property_name(prop_key)

    if prop_key == DONE_RATIO_KEY:
        old_ratio = _parse_int(old_value)
        new_ratio = _parse_int(new_value)
        diff = new_ratio - old_ratio
        if diff > 0:
            bar = progress_bar_with_increase(old_ratio, new_ratio)
            return f"*{prop_name}:* \n{bar} :: +{diff}%"
        bar = progress_bar_with_decrease(new_ratio)
        return f"*{prop_name}:* \n{bar} :: {diff}%"

    if prop_key == STATUS_ID_KEY:
        return (
            f"*{prop_name}:* \n"
            f"`{get_status_name(old_value)}` => `{get_status_name(new_value)}`"
        )

    return f"*{prop_name}:* \n```{old_value} => {new_value}```"


def format_date(value: datetime | None) -> str:
    """Format a date as YYYY-MM-DD ("-" when absent)."""
    if value is None:
        return MISSING_DATE
    return value.strftime(DATE_FORMAT)


def _mrkdwn_section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def build_header_block(event: Event) -> dict[str, Any]:
    data = event.data
    text = (
        f"*{HEADER_EMOJI} {data.assignee} {HEADER_EMOJI}*\n"
        f"*{SUBJECT_LABEL}:* {data.subject}(#{data.job_id})"
    )
    # Work that has not started yet still needs its description
    if data.done_ratio == 0:
        text += f"\n*{DESCRIPTION_LABEL}:* \n{data.description}"
    return _mrkdwn_section(text)


def build_property_change_block(delta: PropertyDelta) -> dict[str, Any]:
    return _mrkdwn_section(
        format_property_change(delta.prop_key, delta.old_value, delta.value)
    )


def build_metadata_block(event: Event) -> dict[str, Any]:
    data = event.data
    return {
        "type": "context",
        "elements": [
            {"type": "mrkdwn", "text": f"*Status:* {data.status}"},
            {"type": "mrkdwn", "text": f"*Priority:* {data.priority}"},
            {"type": "mrkdwn", "text": f"*Due Date:* {format_date(data.due_date)}"},
            {"type": "mrkdwn", "text": f"*Created:* {format_date(data.created_on)}"},
        ],
    }


def render_event_blocks(event: Event) -> list[dict[str, Any]]:
    """Render an event into Slack Block Kit blocks.

    Block order: header, notes (if any), property change (if any), metadata.

    Args:
        event: Decoded event

    Returns:
        List of blocks ready for ``chat.postMessage``
    """
    blocks: list[dict[str, Any]] = [build_header_block(event)]

    notes = normalize_notes(event.data.notes)
    if notes:
        blocks.append(_mrkdwn_section(f"*{NOTES_LABEL}:* \n```{notes}```"))

    if event.property_change is not None:
        blocks.append(build_property_change_block(event.property_change))

    blocks.append(build_metadata_block(event))
    return blocks


def build_fallback_text(event: Event) -> str:
    """Plain-text notification fallback for clients that cannot show blocks."""
    data = event.data
    return f"{data.assignee}: {data.subject} (#{data.job_id})"
