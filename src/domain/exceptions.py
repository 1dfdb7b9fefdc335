"""Custom exception hierarchy for the issue notifier.

Following error taxonomy: retryable (next tick may succeed) and
non-retryable (operator or producer must fix something).
"""


class IssueNotifierError(Exception):
    """Base exception for all application errors."""

    pass


class RetryableError(IssueNotifierError):
    """Errors that can be retried (network issues, temporary failures)."""

    pass


class NonRetryableError(IssueNotifierError):
    """Errors that should not be retried (bad payloads, corrupt state)."""

    pass


class MalformedEventError(NonRetryableError):
    """Stored object could not be decoded into an event."""

    def __init__(self, message: str, object_key: str = "") -> None:
        self.object_key = object_key
        super().__init__(message)


class StoreUnavailableError(RetryableError):
    """Object store listing or fetch failed; the whole cycle is deferred."""

    pass


class ArchiveError(RetryableError):
    """Moving a delivered object to the processed prefix failed."""

    pass


class LedgerCorruptError(NonRetryableError):
    """Persisted ledger snapshot exists but cannot be parsed."""

    pass


class LedgerPersistError(RetryableError):
    """Ledger snapshot could not be written; in-memory state stays valid."""

    pass


class SlackAPIError(RetryableError):
    """Slack API communication errors."""

    def __init__(
        self, message: str, status_code: int | None = None, body: str = ""
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class RateLimitError(SlackAPIError):
    """API rate limit exceeded."""

    def __init__(self, retry_after: int | None = None) -> None:
        """Initialize with optional retry_after seconds."""
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded. Retry after: {retry_after}s", status_code=429
        )


class DeliveryError(RetryableError):
    """Notification could not be delivered.

    Never retried automatically: by the time delivery runs the ledger has
    usually advanced already.
    """

    def __init__(
        self, message: str, status_code: int | None = None, body: str = ""
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)
