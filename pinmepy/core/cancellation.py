"""
Structured cancellation for concurrent upload tasks.

A single CancellationToken is shared by every task of one upload session.
Tasks check it at each suspension point: before a network call, while a
network call is in flight and while sleeping between retries.
"""
import asyncio
from typing import Awaitable, Optional, TypeVar

from .exceptions import CancellationError

T = TypeVar('T')


class CancellationToken:
    """
    Cancellation context shared by cooperating tasks.

    Example:
        >>> token = CancellationToken()
        >>> await token.guard(api.upload_chunk(...))
        >>> token.cancel("chunk 3 failed")
        >>> token.raise_if_cancelled()  # raises CancellationError
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        """Returns True once cancel() has been called."""
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        """Reason given by the first cancel() call."""
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        """
        Raise the cancellation signal.

        Only the first call records its reason.

        Returns:
            True if this call raised the signal, False if it was already raised
        """
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    def raise_if_cancelled(self) -> None:
        """Raise CancellationError if the signal has been raised."""
        if self._event.is_set():
            raise CancellationError()

    async def wait(self) -> None:
        """Block until the signal is raised."""
        await self._event.wait()

    async def sleep(self, delay: float) -> None:
        """
        Sleep for delay seconds, waking early on cancellation.

        Raises:
            CancellationError: If the signal is raised before or during the sleep
        """
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise CancellationError()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Run an awaitable, aborting it if the signal is raised first.

        Args:
            awaitable: Typically a single network call

        Returns:
            The awaitable's result

        Raises:
            CancellationError: If cancelled before or while the awaitable runs
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CancellationError()

        work = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            watcher.cancel()

        if work.done():
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        except Exception:
            # The aborted call's own error is irrelevant once cancelled
            pass
        raise CancellationError()
