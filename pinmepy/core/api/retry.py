"""Retry strategies using Strategy Pattern."""
from abc import ABC, abstractmethod

from ..cancellation import CancellationToken
from ..exceptions import CancellationError, RequestTimeoutError


class RetryStrategy(ABC):
    """Abstract retry strategy."""

    @abstractmethod
    def should_retry(self, error: BaseException, retry_count: int) -> bool:
        """Determines if a failed attempt should be retried."""
        pass

    @abstractmethod
    async def wait(self, retry_count: int, token: CancellationToken):
        """Waits before the next attempt, observing cancellation."""
        pass


class FixedDelayStrategy(RetryStrategy):
    """
    Retries up to max_retries times with a fixed delay between attempts.

    Per-request timeouts and cancellation are terminal and never retried.
    """

    def __init__(self, max_retries: int = 2, delay: float = 1.0):
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        self.max_retries = max_retries
        self.delay = delay

    def should_retry(self, error: BaseException, retry_count: int) -> bool:
        """Retries any failure except timeouts and cancellation."""
        if isinstance(error, (CancellationError, RequestTimeoutError)):
            return False
        return retry_count < self.max_retries

    async def wait(self, retry_count: int, token: CancellationToken):
        """Sleeps the fixed delay; raises CancellationError if cancelled meanwhile."""
        await token.sleep(self.delay)
