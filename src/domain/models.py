"""Domain models for the issue notifier.

All models use Pydantic v2 for validation and serialization. Event models
are frozen: an event's identity is assigned by the producer and never
changes after decoding.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.domain.notification_constants import DONE_RATIO_MAX, DONE_RATIO_MIN

_DATE_FIELDS = ("start_date", "due_date", "created_on", "updated_on")


class LedgerMode(str, Enum):
    """Deduplication strategy used by the ledger."""

    EVENT_ID = "event_id"
    TIMESTAMP = "timestamp"


class DeliveryOrder(str, Enum):
    """When the ledger is advanced relative to delivery."""

    MARK_FIRST = "mark_first"  # at-most-once across crashes
    DELIVER_FIRST = "deliver_first"  # at-least-once across crashes


class PropertyDelta(BaseModel):
    """Single field transition recorded in an issue journal."""

    model_config = ConfigDict(frozen=True)

    prop_key: str = Field(..., min_length=1, description="Changed property key")
    old_value: str = Field(default="", description="Value before the change")
    value: str = Field(default="", description="Value after the change")

    @field_validator("old_value", "value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)


class ChangeRecord(BaseModel):
    """Issue snapshot carried in the event's ``data`` member."""

    model_config = ConfigDict(frozen=True)

    id: int = 0
    job_id: int = 0
    login: str = ""
    subject: str = ""
    description: str = ""
    notes: str = ""
    assignee: str = ""
    author: str = ""
    commentor: str = ""
    email: str = ""
    status: str = ""
    status_id: int = 0
    priority: str = ""
    done_ratio: int = Field(default=0, ge=DONE_RATIO_MIN, le=DONE_RATIO_MAX)
    estimated_hours: float = 0.0
    start_date: datetime | None = None
    due_date: datetime | None = None
    created_on: datetime | None = None
    updated_on: datetime | None = None
    property_change: PropertyDelta | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_property_change(cls, data: Any) -> Any:
        """Accept the tracker's flat ``prop_key/old_value/value`` journal shape."""
        if not isinstance(data, dict) or data.get("property_change"):
            return data
        prop_key = data.get("prop_key")
        if not prop_key:
            return data
        lifted = dict(data)
        lifted["property_change"] = {
            "prop_key": prop_key,
            "old_value": data.get("old_value"),
            "value": data.get("value"),
        }
        return lifted

    @field_validator(*_DATE_FIELDS, mode="before")
    @classmethod
    def _blank_date_to_none(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        # Zero time emitted by Go producers
        if isinstance(v, str) and v.startswith("0001-01-01"):
            return None
        return v

    @field_validator(
        "login",
        "subject",
        "description",
        "notes",
        "assignee",
        "author",
        "commentor",
        "email",
        "status",
        "priority",
        mode="before",
    )
    @classmethod
    def _null_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class Event(BaseModel):
    """One decoded "issue changed" event read from the bucket."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_id: str = Field(default="", alias="id")
    kind: str = Field(default="", alias="type")
    occurred_at: datetime | None = Field(default=None, alias="time")
    spec_version: str = Field(default="", alias="specversion")
    source: str = ""
    data_content_type: str = Field(default="", alias="datacontenttype")
    data: ChangeRecord = Field(default_factory=ChangeRecord)
    object_key: str = Field(default="", description="Storage key it was read from")

    @field_validator("occurred_at", mode="before")
    @classmethod
    def _blank_time_to_none(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        if isinstance(v, str) and v.startswith("0001-01-01"):
            return None
        return v

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def property_change(self) -> PropertyDelta | None:
        return self.data.property_change


class StoredObject(BaseModel):
    """Object listing entry returned by the object store."""

    model_config = ConfigDict(frozen=True)

    key: str
    size: int = 0
    last_modified: datetime | None = None


class DeliveryPolicy(BaseModel):
    """Fixed rule deciding which events are worth a notification."""

    model_config = ConfigDict(frozen=True)

    event_type: str
    status: str

    def matches(self, event: Event) -> bool:
        return event.kind == self.event_type and event.data.status == self.status


class BusinessHours(BaseModel):
    """Local working window the poller is allowed to run in.

    The hour interval is half-open: ``start_hour <= hour < end_hour``.
    """

    model_config = ConfigDict(frozen=True)

    tz_name: str = "Asia/Seoul"
    start_hour: int = Field(default=9, ge=0, le=23)
    end_hour: int = Field(default=18, ge=1, le=24)
    weekdays: tuple[int, ...] = (0, 1, 2, 3, 4)

    @model_validator(mode="after")
    def _check_window(self) -> "BusinessHours":
        if self.start_hour >= self.end_hour:
            raise ValueError("start_hour must be earlier than end_hour")
        return self


class CycleOptions(BaseModel):
    """Per-deployment knobs for one ingestion cycle."""

    model_config = ConfigDict(frozen=True)

    events_prefix: str = "issues/"
    processed_prefix: str = "processed/"
    archive_on_success: bool = True
    ledger_mode: LedgerMode = LedgerMode.TIMESTAMP
    delivery_order: DeliveryOrder = DeliveryOrder.MARK_FIRST


class CycleResult(BaseModel):
    """Counters produced by a single ingestion cycle."""

    listed: int = 0
    decoded: int = 0
    malformed: int = 0
    skipped_seen: int = 0
    skipped_policy: int = 0
    delivered: int = 0
    delivery_failed: int = 0
    archived: int = 0
    archive_failed: int = 0
