"""Protocol definitions for dependency inversion.

These abstract interfaces define contracts that adapters must implement.
"""

from datetime import datetime
from typing import Any, Protocol

from src.domain.models import Event, StoredObject

LedgerKey = str | datetime


class ObjectStoreProtocol(Protocol):
    """Protocol for the bucket holding producer event files."""

    def list_objects(self, prefix: str) -> list[StoredObject]:
        """List objects under a prefix in listing order.

        Raises:
            StoreUnavailableError: On listing failure
        """
        ...

    def get_object(self, key: str) -> bytes:
        """Fetch an object's payload.

        Raises:
            StoreUnavailableError: On fetch failure
        """
        ...

    def copy_object(self, src_key: str, dst_key: str) -> None:
        """Copy an object inside the bucket."""
        ...

    def delete_object(self, key: str) -> None:
        """Delete an object."""
        ...

    def move_object(self, src_key: str, dst_key: str) -> None:
        """Copy then delete as one logical move.

        Raises:
            ArchiveError: If either step fails
        """
        ...


class NotifierProtocol(Protocol):
    """Protocol for delivering rendered messages to the configured receiver."""

    def notify(self, blocks: list[dict[str, Any]], text: str = "") -> str:
        """Deliver Block Kit blocks.

        Args:
            blocks: Rendered message blocks
            text: Plain-text fallback

        Returns:
            Remote message identifier (Slack message timestamp)

        Raises:
            DeliveryError: On any delivery failure
        """
        ...


class LedgerProtocol(Protocol):
    """Protocol for the durable record of handled events."""

    def identity_of(self, event: Event) -> LedgerKey | None:
        """Return the key this ledger tracks the event by (None if unusable)."""
        ...

    def is_new(self, key: LedgerKey) -> bool:
        """Return True if the key has not been handled yet."""
        ...

    def mark_seen(self, key: LedgerKey) -> None:
        """Record the key in memory (idempotent, never regresses)."""
        ...

    def persist(self) -> None:
        """Write the current state to durable storage.

        Raises:
            LedgerPersistError: If the snapshot could not be written
        """
        ...

    def claim(self, key: LedgerKey) -> bool:
        """Atomically check, mark and persist. True if the caller owns the key."""
        ...
