"""Slack DM notifier for the configured receiver."""

from typing import Any
from urllib.error import URLError

from src.adapters.slack_client import SlackClient
from src.config.logging_config import get_logger
from src.domain.exceptions import DeliveryError, SlackAPIError

logger = get_logger(__name__)


class SlackNotifier:
    """Deliver rendered blocks as a direct message to one Slack user."""

    def __init__(self, client: SlackClient, receiver_email: str) -> None:
        """Initialize notifier.

        Args:
            client: Slack client adapter
            receiver_email: Email of the single receiving workspace member
        """
        self._client = client
        self._receiver_email = receiver_email
        self._channel_id: str | None = None

    def _resolve_channel(self) -> str:
        if self._channel_id is None:
            user_id = self._client.lookup_user_id_by_email(self._receiver_email)
            self._channel_id = self._client.open_direct_channel(user_id)
            logger.info(
                "slack_receiver_resolved",
                receiver_email=self._receiver_email,
                channel_id=self._channel_id,
            )
        return self._channel_id

    def notify(self, blocks: list[dict[str, Any]], text: str = "") -> str:
        """Send blocks to the receiver's DM channel.

        Returns:
            Slack message timestamp

        Raises:
            DeliveryError: When Slack rejects the lookup, the channel open or
                the post (carries remote status and body), or when the API
                cannot be reached at all (no status)
        """
        try:
            channel_id = self._resolve_channel()
            ts = self._client.post_message(channel_id, blocks, text=text)
        except SlackAPIError as e:
            raise DeliveryError(
                f"Failed to notify {self._receiver_email}: {e}",
                status_code=e.status_code,
                body=e.body,
            ) from e
        except (URLError, OSError) as e:
            raise DeliveryError(
                f"Slack unreachable for {self._receiver_email}: {e}",
                status_code=None,
                body="",
            ) from e

        logger.info("slack_notification_sent", channel_id=channel_id, ts=ts)
        return ts
