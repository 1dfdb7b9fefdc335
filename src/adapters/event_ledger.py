"""Durable ledger of events that were already handled.

Two strategies share one JSON snapshot file format family:

- ``EventIdLedger``: ``{"<event id>": true, ...}``, only ever grows.
- ``TimestampLedger``: a single RFC 3339 string, the high-water mark of
  processed event times, never regresses.

The snapshot is rewritten wholesale on every update via write-to-temp plus
``os.replace`` so a crash can never leave a half-written file behind.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from src.config.logging_config import get_logger
from src.domain.exceptions import LedgerCorruptError, LedgerPersistError
from src.domain.models import Event, LedgerMode
from src.domain.protocols import LedgerKey

logger = get_logger(__name__)


class EventLedger(ABC):
    """Base class holding the snapshot path and the ledger lock."""

    mode: LedgerMode

    def __init__(self, path: str | Path) -> None:
        """Initialize an empty ledger.

        Args:
            path: Location of the JSON snapshot
        """
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    @abstractmethod
    def identity_of(self, event: Event) -> LedgerKey | None:
        """Return the key this ledger tracks the event by."""

    @abstractmethod
    def _is_new(self, key: LedgerKey) -> bool: ...

    @abstractmethod
    def _mark_seen(self, key: LedgerKey) -> None: ...

    @abstractmethod
    def _encode(self) -> Any: ...

    @abstractmethod
    def _decode(self, raw: Any) -> None: ...

    @abstractmethod
    def _reset(self) -> None: ...

    def is_new(self, key: LedgerKey) -> bool:
        with self._lock:
            return self._is_new(key)

    def mark_seen(self, key: LedgerKey) -> None:
        with self._lock:
            self._mark_seen(key)

    def claim(self, key: LedgerKey) -> bool:
        """Check, mark and persist a key under the ledger lock.

        A persist failure is logged; the in-memory mark still stands so the
        event is not handed out again during this process lifetime.

        Returns:
            True if the key was new and is now owned by the caller
        """
        with self._lock:
            if not self._is_new(key):
                return False
            self._mark_seen(key)
            try:
                self.persist()
            except LedgerPersistError as e:
                logger.error(
                    "ledger_persist_failed",
                    path=str(self._path),
                    key=str(key),
                    error=str(e),
                )
            return True

    def load(self) -> None:
        """Load the snapshot from disk.

        A missing or empty file yields the empty state.

        Raises:
            LedgerCorruptError: If the file exists but cannot be parsed
        """
        with self._lock:
            self._reset()
            try:
                content = self._path.read_text(encoding="utf-8")
            except FileNotFoundError:
                logger.info("ledger_snapshot_missing", path=str(self._path))
                return
            except OSError as e:
                raise LedgerCorruptError(
                    f"Cannot read ledger snapshot {self._path}: {e}"
                ) from e

            if not content.strip():
                return

            try:
                self._decode(json.loads(content))
            except (json.JSONDecodeError, TypeError, ValueError) as e:
                self._reset()
                raise LedgerCorruptError(
                    f"Ledger snapshot {self._path} is corrupt: {e}"
                ) from e

            logger.info(
                "ledger_loaded", path=str(self._path), mode=self.mode.value
            )

    def persist(self) -> None:
        """Atomically replace the snapshot with the current state.

        Raises:
            LedgerPersistError: If the snapshot could not be written
        """
        with self._lock:
            serialized = json.dumps(self._encode(), ensure_ascii=False, sort_keys=True)
            directory = self._path.parent
            tmp_name: str | None = None
            try:
                directory.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=directory,
                    prefix=f".{self._path.name}.",
                    suffix=".tmp",
                    delete=False,
                ) as tmp:
                    tmp_name = tmp.name
                    tmp.write(serialized)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                os.replace(tmp_name, self._path)
            except OSError as e:
                if tmp_name is not None and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise LedgerPersistError(
                    f"Failed to write ledger snapshot {self._path}: {e}"
                ) from e


class EventIdLedger(EventLedger):
    """Set of event ids that were already handled."""

    mode = LedgerMode.EVENT_ID

    def __init__(self, path: str | Path) -> None:
        super().__init__(path)
        self._seen: dict[str, bool] = {}

    def identity_of(self, event: Event) -> str | None:
        return event.event_id or None

    def _is_new(self, key: LedgerKey) -> bool:
        return str(key) not in self._seen

    def _mark_seen(self, key: LedgerKey) -> None:
        self._seen[str(key)] = True

    def _encode(self) -> dict[str, bool]:
        return dict(self._seen)

    def _decode(self, raw: Any) -> None:
        if not isinstance(raw, dict):
            raise TypeError(f"expected an object of event ids, got {type(raw).__name__}")
        self._seen = {str(event_id): True for event_id, seen in raw.items() if seen}

    def _reset(self) -> None:
        self._seen = {}

    def snapshot(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._seen)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class TimestampLedger(EventLedger):
    """High-water mark of the latest processed event time."""

    mode = LedgerMode.TIMESTAMP

    def __init__(self, path: str | Path) -> None:
        super().__init__(path)
        self._last_processed: datetime | None = None

    def identity_of(self, event: Event) -> datetime | None:
        return event.occurred_at

    def _is_new(self, key: LedgerKey) -> bool:
        if not isinstance(key, datetime):
            raise TypeError("TimestampLedger keys must be datetimes")
        if self._last_processed is None:
            return True
        return _as_utc(key) > self._last_processed

    def _mark_seen(self, key: LedgerKey) -> None:
        if not isinstance(key, datetime):
            raise TypeError("TimestampLedger keys must be datetimes")
        candidate = _as_utc(key)
        if self._last_processed is None or candidate > self._last_processed:
            self._last_processed = candidate

    def _encode(self) -> str | None:
        if self._last_processed is None:
            return None
        return self._last_processed.isoformat()

    def _decode(self, raw: Any) -> None:
        if raw is None:
            self._last_processed = None
            return
        if not isinstance(raw, str):
            raise TypeError(f"expected a timestamp string, got {type(raw).__name__}")
        self._last_processed = _as_utc(datetime.fromisoformat(raw))

    def _reset(self) -> None:
        self._last_processed = None

    def snapshot(self) -> datetime | None:
        with self._lock:
            return self._last_processed


def create_ledger(mode: LedgerMode, path: str | Path) -> EventLedger:
    """Build the configured ledger strategy and load its snapshot.

    Raises:
        LedgerCorruptError: If the snapshot exists but cannot be parsed
    """
    ledger: EventLedger
    if mode is LedgerMode.EVENT_ID:
        ledger = EventIdLedger(path)
    else:
        ledger = TimestampLedger(path)
    ledger.load()
    return ledger


__all__ = [
    "EventIdLedger",
    "EventLedger",
    "TimestampLedger",
    "create_ledger",
]
