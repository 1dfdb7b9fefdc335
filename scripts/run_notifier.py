"""Poll the event bucket and send Slack notifications during business hours."""

from __future__ import annotations

import argparse
import sys
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from scripts import pipeline_runtime
from src.adapters.event_ledger import create_ledger
from src.adapters.s3_object_store import S3ObjectStore, create_s3_client
from src.adapters.slack_client import SlackClient
from src.adapters.slack_notifier import SlackNotifier
from src.config.logging_config import bind_context, get_logger, unbind_context
from src.config.settings import Settings, get_settings
from src.domain.exceptions import LedgerCorruptError, StoreUnavailableError
from src.domain.models import BusinessHours, CycleOptions, CycleResult, DeliveryPolicy
from src.domain.protocols import LedgerProtocol, NotifierProtocol, ObjectStoreProtocol
from src.services.business_hours import is_business_hour
from src.use_cases.process_bucket import process_bucket_use_case

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the issue event notifier")
    parser.add_argument(
        "--interval-seconds",
        type=float,
        default=None,
        help="Interval between bucket polls (default: from settings)",
    )
    parser.add_argument(
        "--ignore-business-hours",
        action="store_true",
        help="Poll around the clock instead of only during business hours",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs in JSON format",
    )
    parser.add_argument(
        "--run-once",
        action="store_true",
        help="Run a single poll and exit",
    )
    args = parser.parse_args(argv)
    if args.interval_seconds is not None and args.interval_seconds <= 0:
        parser.error("--interval-seconds must be greater than 0")
    return args


def make_tick(
    *,
    store: ObjectStoreProtocol,
    notifier: NotifierProtocol,
    ledger: LedgerProtocol,
    policy: DeliveryPolicy,
    options: CycleOptions,
    hours: BusinessHours,
    ignore_business_hours: bool = False,
    clock: Callable[[], datetime | None] = lambda: None,
) -> Callable[[], CycleResult | None]:
    """Build the per-tick action: gate check, then one ingestion cycle."""

    def _tick() -> CycleResult | None:
        if not ignore_business_hours and not is_business_hour(clock(), hours):
            logger.debug("business_hours_closed", timezone=hours.tz_name)
            return None
        bind_context(cycle_id=uuid.uuid4().hex[:12])
        try:
            return process_bucket_use_case(store, notifier, ledger, policy, options)
        except StoreUnavailableError as e:
            logger.warning("store_unavailable", error=str(e))
            return None
        finally:
            unbind_context("cycle_id")

    return _tick


def build_store(settings: Settings) -> S3ObjectStore:
    client = create_s3_client(
        region=settings.storage_region,
        endpoint_url=settings.storage_endpoint_url,
        access_key=settings.storage_access_key.get_secret_value(),
        secret_key=settings.storage_secret_key.get_secret_value(),
        verify_tls=settings.storage_verify_tls,
    )
    return S3ObjectStore(settings.storage_bucket, client)


def build_notifier(settings: Settings) -> SlackNotifier:
    client = SlackClient(settings.slack_bot_token.get_secret_value())
    return SlackNotifier(client, settings.slack_receiver_email)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    settings = get_settings()
    pipeline_runtime.initialize_logging(settings, json_logs=args.json_logs)

    try:
        ledger = create_ledger(settings.ledger_mode, settings.ledger_path)
    except LedgerCorruptError as exc:
        logger.error("ledger_corrupt", path=settings.ledger_path, error=str(exc))
        return 1

    store = build_store(settings)
    logger.info(
        "notifier_starting",
        bucket=store.bucket,
        ledger_path=str(ledger.path),
        region=settings.storage_region,
        endpoint=settings.storage_endpoint_url,
        ledger_mode=settings.ledger_mode.value,
        delivery_order=settings.delivery_order.value,
    )

    controller = pipeline_runtime.create_shutdown_controller()
    pipeline_runtime.install_signal_handlers(controller)

    tick = make_tick(
        store=store,
        notifier=build_notifier(settings),
        ledger=ledger,
        policy=settings.delivery_policy(),
        options=settings.cycle_options(),
        hours=settings.business_hours(),
        ignore_business_hours=args.ignore_business_hours,
    )

    pipeline_runtime.run_scheduler_loop(
        controller=controller,
        interval_seconds=args.interval_seconds or settings.poll_interval_seconds,
        run_once=args.run_once,
        action=tick,
    )

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
