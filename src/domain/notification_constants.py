"""Constants for notification rendering.

Controlled vocabularies of the issue tracker and the glyphs used by the
progress bar. The tables are closed: anything not listed renders raw.
"""

from typing import Final

DONE_RATIO_MIN: Final[int] = 0
DONE_RATIO_MAX: Final[int] = 100

PROGRESS_BAR_SEGMENTS: Final[int] = 10

SEGMENT_FILLED: Final[str] = "⬛"  # progress already there
SEGMENT_ADDED: Final[str] = "🟩"  # progress gained in this change
SEGMENT_EMPTY: Final[str] = "⬜"
SEGMENT_REMOVED: Final[str] = "🟥"  # progress lost in this change

DATE_FORMAT: Final[str] = "%Y-%m-%d"
MISSING_DATE: Final[str] = "-"

DONE_RATIO_KEY: Final[str] = "done_ratio"
STATUS_ID_KEY: Final[str] = "status_id"

HEADER_EMOJI: Final[str] = ":large_yellow_circle:"
SUBJECT_LABEL: Final[str] = "일감명"
DESCRIPTION_LABEL: Final[str] = "업무내용"
NOTES_LABEL: Final[str] = "작성내용"

STATUS_NAMES: Final[dict[int, str]] = {
    4: "의견(Opinion)",
    5: "완료(Completion)",
    7: "중지(Pause)",
}

PROPERTY_NAMES: Final[dict[str, str]] = {
    "status_id": "진행상태",
    "due_date": "마감일",
    "done_ratio": "완료율",
    "tracker_id": "트래커",
    "parent_id": "상위일감",
    "child_id": "하위일감",
    "description": "설명",
    "priority_id": "우선순위",
    "precedes": "이전",
    "follows": "팔로워",
    "subject": "일감명",
    "start_date": "시작일",
    "estimated_hours": "수행시간",
    "assigned_to_id": "담당자",
    "category_id": "범주",
    "fixed_version_id": "목표버전",
    "project_id": "프로젝트",
    "is_private": "비공개",
}

# Order matters: "**" is a substring of "***".
NOTES_MARKERS: Final[tuple[tuple[str, str], ...]] = (
    ("***", "    -"),
    ("**", "  -"),
)
