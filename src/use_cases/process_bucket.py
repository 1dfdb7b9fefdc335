"""Process bucket use case.

One ingestion cycle: list event files, decode, deduplicate against the
ledger, filter by delivery policy, render, notify and archive.
"""

from datetime import UTC, datetime

from src.config.logging_config import get_logger
from src.domain.exceptions import ArchiveError, DeliveryError, MalformedEventError
from src.domain.models import (
    CycleOptions,
    CycleResult,
    DeliveryOrder,
    DeliveryPolicy,
    Event,
    LedgerMode,
)
from src.domain.protocols import LedgerProtocol, NotifierProtocol, ObjectStoreProtocol
from src.services.event_decoder import decode_event
from src.services.message_renderer import build_fallback_text, render_event_blocks

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _ordering_key(event: Event) -> tuple[bool, datetime]:
    occurred_at = event.occurred_at
    if occurred_at is None:
        return (False, _EPOCH)
    if occurred_at.tzinfo is None:
        occurred_at = occurred_at.replace(tzinfo=UTC)
    return (True, occurred_at)


def load_events(
    store: ObjectStoreProtocol, prefix: str, result: CycleResult
) -> list[Event]:
    """List and decode every event under ``prefix``.

    Malformed objects are logged and skipped.

    Raises:
        StoreUnavailableError: If listing or fetching fails
    """
    objects = store.list_objects(prefix)
    result.listed = len(objects)

    events: list[Event] = []
    for stored in objects:
        payload = store.get_object(stored.key)
        try:
            events.append(decode_event(payload, stored.key))
        except MalformedEventError as e:
            result.malformed += 1
            logger.warning("event_decode_failed", object_key=stored.key, error=str(e))

    result.decoded = len(events)
    return events


def sort_events(events: list[Event], ledger_mode: LedgerMode) -> list[Event]:
    """Order events for ledger advancement.

    Timestamp mode needs ascending event time so the high-water mark only
    moves forward; event-id mode keeps listing order. Events without a time
    sort first.
    """
    if ledger_mode is LedgerMode.TIMESTAMP:
        return sorted(events, key=_ordering_key)
    return list(events)


def _deliver(
    event: Event,
    store: ObjectStoreProtocol,
    notifier: NotifierProtocol,
    options: CycleOptions,
    result: CycleResult,
) -> bool:
    """Render, notify and archive one event. Returns True if delivered."""
    blocks = render_event_blocks(event)
    try:
        ts = notifier.notify(blocks, text=build_fallback_text(event))
    except DeliveryError as e:
        result.delivery_failed += 1
        logger.error(
            "delivery_failed",
            event_id=event.event_id,
            object_key=event.object_key,
            status_code=e.status_code,
            body=e.body,
            error=str(e),
        )
        return False

    result.delivered += 1
    logger.info(
        "event_delivered",
        event_id=event.event_id,
        object_key=event.object_key,
        job_id=event.data.job_id,
        ts=ts,
    )

    if options.archive_on_success and event.object_key:
        dst_key = options.processed_prefix + event.object_key
        try:
            store.move_object(event.object_key, dst_key)
            result.archived += 1
        except ArchiveError as e:
            result.archive_failed += 1
            logger.error(
                "archive_failed",
                event_id=event.event_id,
                object_key=event.object_key,
                dst_key=dst_key,
                error=str(e),
            )
    return True


def process_bucket_use_case(
    store: ObjectStoreProtocol,
    notifier: NotifierProtocol,
    ledger: LedgerProtocol,
    policy: DeliveryPolicy,
    options: CycleOptions,
) -> CycleResult:
    """Run one ingestion cycle.

    1. List and decode event files (malformed files are skipped)
    2. Sort by event time in timestamp mode
    3. Skip events the ledger has already seen
    4. Skip events the delivery policy rejects
    5. Render and deliver, then archive the source object

    With ``DeliveryOrder.MARK_FIRST`` the ledger is advanced and persisted
    before delivery, so a crash or failed delivery never produces a duplicate
    but may drop a notification. ``DeliveryOrder.DELIVER_FIRST`` advances the
    ledger only after the event is fully handled, so a failed delivery is
    retried on the next cycle.

    Args:
        store: Object store holding event files
        notifier: Delivery channel for rendered messages
        ledger: Dedup ledger (loaded)
        policy: Which events deserve a notification
        options: Prefixes, archival and ordering knobs

    Returns:
        CycleResult with counters

    Raises:
        StoreUnavailableError: If the bucket cannot be listed or read; the
            whole cycle is deferred to the next tick
    """
    result = CycleResult()
    events = sort_events(
        load_events(store, options.events_prefix, result), options.ledger_mode
    )

    for event in events:
        key = ledger.identity_of(event)
        if key is None:
            result.malformed += 1
            logger.warning(
                "event_missing_identity",
                object_key=event.object_key,
                ledger_mode=options.ledger_mode.value,
            )
            continue

        if options.delivery_order is DeliveryOrder.MARK_FIRST:
            if not ledger.claim(key):
                result.skipped_seen += 1
                continue
            if not policy.matches(event):
                result.skipped_policy += 1
                continue
            _deliver(event, store, notifier, options, result)
            continue

        if not ledger.is_new(key):
            result.skipped_seen += 1
            continue
        if not policy.matches(event):
            result.skipped_policy += 1
            ledger.claim(key)
            continue
        # is_new and claim are separate lock acquisitions, so deliver-first
        # assumes a single worker per ledger
        if _deliver(event, store, notifier, options, result):
            if not ledger.claim(key):
                logger.warning(
                    "ledger_claim_lost",
                    event_id=event.event_id,
                    object_key=event.object_key,
                )
        elif options.ledger_mode is LedgerMode.TIMESTAMP:
            # A later mark would hide this event for good
            logger.warning(
                "cycle_halted_after_delivery_failure",
                event_id=event.event_id,
                object_key=event.object_key,
            )
            break

    logger.info("cycle_completed", **result.model_dump())
    return result


__all__ = ["load_events", "process_bucket_use_case", "sort_events"]
