"""Slack API client adapter."""

import time
from typing import Any, Final, cast

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from src.config.logging_config import get_logger
from src.domain.exceptions import RateLimitError, SlackAPIError

logger = get_logger(__name__)


DEFAULT_SLACK_MAX_RETRIES: Final[int] = 3
DEFAULT_RETRY_AFTER_SECONDS: Final[int] = 10


def _error_details(error: SlackApiError) -> tuple[int | None, str]:
    response = error.response
    status_code = getattr(response, "status_code", None)
    data = getattr(response, "data", None)
    body = str(data) if data is not None else str(error)
    return status_code, body


class SlackClient:
    """Slack Web API client with rate-limit handling."""

    def __init__(
        self,
        bot_token: str,
        *,
        client: Any | None = None,
        max_retries: int = DEFAULT_SLACK_MAX_RETRIES,
    ) -> None:
        """Initialize Slack client.

        Args:
            bot_token: Slack bot user OAuth token
            client: Optional preconfigured WebClient (tests inject stubs here)
            max_retries: Maximum attempts for rate-limited calls
        """
        self.client = client if client is not None else WebClient(token=bot_token)
        self._max_retries = max(max_retries, 1)

    def _call(self, method: str, **params: Any) -> dict[str, Any]:
        """Invoke a Web API method, sleeping through rate limits.

        Raises:
            RateLimitError: If still rate limited after all retries
            SlackAPIError: On any other API error
        """
        attempt = 0
        while True:
            try:
                response = getattr(self.client, method)(**params)
            except SlackApiError as error:
                if error.response.get("error") == "ratelimited":
                    retry_after = int(
                        error.response.headers.get(
                            "Retry-After", DEFAULT_RETRY_AFTER_SECONDS
                        )
                    )
                    attempt += 1
                    logger.warning(
                        "slack_rate_limited",
                        method=method,
                        retry_after_seconds=retry_after,
                        attempt=attempt,
                        max_retries=self._max_retries,
                    )
                    if attempt >= self._max_retries:
                        raise RateLimitError(retry_after=retry_after) from error
                    time.sleep(retry_after)
                    continue

                status_code, body = _error_details(error)
                raise SlackAPIError(
                    f"Slack {method} failed: {error.response.get('error')}",
                    status_code=status_code,
                    body=body,
                ) from error

            if not response.get("ok"):
                raise SlackAPIError(
                    f"Slack {method} failed: {response.get('error')}",
                    status_code=getattr(response, "status_code", None),
                    body=str(getattr(response, "data", response)),
                )
            return cast(dict[str, Any], response)

    def lookup_user_id_by_email(self, email: str) -> str:
        """Resolve a workspace user ID from an email address.

        Raises:
            SlackAPIError: If the lookup fails or the user does not exist
        """
        if not email:
            raise SlackAPIError("Receiver email is empty")
        response = self._call("users_lookupByEmail", email=email)
        return str(response["user"]["id"])

    def open_direct_channel(self, user_id: str) -> str:
        """Open (or reuse) a DM conversation with a user and return its ID."""
        response = self._call("conversations_open", users=user_id)
        return str(response["channel"]["id"])

    def post_message(
        self, channel_id: str, blocks: list[dict[str, Any]], text: str = ""
    ) -> str:
        """Post message with Block Kit to channel.

        Args:
            channel_id: Target channel ID
            blocks: Slack Block Kit blocks
            text: Fallback text for notifications

        Returns:
            Message timestamp

        Raises:
            SlackAPIError: On API communication errors
        """
        response = self._call(
            "chat_postMessage",
            channel=channel_id,
            blocks=blocks,
            text=text or "Issue updated",
        )
        return str(response["ts"])
