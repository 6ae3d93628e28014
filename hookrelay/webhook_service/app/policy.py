"""Retry policy for rate-limited webhook deliveries."""

from __future__ import annotations

from dataclasses import dataclass

from .transport import SendResult, SendResultKind

DEFAULT_RETRY_AFTER_SECONDS = 1.0


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Only 429s are retried, and only until ``max_attempts`` is reached.

    Rejections and transport errors are terminal on the first attempt.
    """

    max_attempts: int = 2
    default_retry_after: float = DEFAULT_RETRY_AFTER_SECONDS

    def should_retry(self, attempt: int, result: SendResult) -> bool:
        if result.kind is not SendResultKind.RATE_LIMITED:
            return False
        return attempt < self.max_attempts

    def retry_delay(self, result: SendResult) -> float:
        """Cooldown after a 429; the sink's headers win over the default."""
        if result.retry_after is None:
            return self.default_retry_after
        return result.retry_after


SINGLE_RETRY = RetryPolicy()
